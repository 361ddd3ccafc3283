"""
Central logging configuration for infinitecal.

Scrolling produces bursts of debounce, cache and load-state messages, so the
engine's module loggers stay at INFO unless debug mode is requested, and
noisy third-party loggers are held at WARNING.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

ENGINE_MODULES = [
    "infinitecal",
    "infinitecal.engine",
    "infinitecal.calendar.composer",
    "infinitecal.calendar.month_window",
    "infinitecal.core.async_utils",
    "infinitecal.core.config_manager",
    "infinitecal.events.event_cache",
    "infinitecal.events.event_loader",
    "infinitecal.events.event_transform",
    "infinitecal.viewport.layout",
    "infinitecal.viewport.scroll_gate",
    "infinitecal.viewport.viewport_tracker",
]

SUPPRESSED_LOGGERS = [
    "asyncio",
    "httpx",
    "aiohttp.client",
    "urllib3.connectionpool",
]

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def build_console_handler(level: int) -> logging.Handler:
    """Console handler with a colorized level column.

    Format: HH:MM:SS  LEVEL   logger.name: message
    """
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
            log_colors=LOG_COLORS,
        )
    )
    return handler


def configure_engine_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for infinitecal.

    Args:
        debug_mode: Whether to enable debug logging for infinitecal modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        INFINITECAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        INFINITECAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("INFINITECAL_DEBUG", "").lower() in ("1", "true", "yes", "on")
    env_log_level = os.getenv("INFINITECAL_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist
    if not root_logger.handlers:
        root_logger.addHandler(build_console_handler(root_level))

    logger_config: dict[str, int] = {name: logging.WARNING for name in SUPPRESSED_LOGGERS}
    engine_level = logging.DEBUG if final_debug else logging.INFO
    for module in ENGINE_MODULES:
        logger_config[module] = engine_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for infinitecal modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["infinitecal", *SUPPRESSED_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
