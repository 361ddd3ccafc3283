"""Tests for infinitecal.engine_logging module."""

import logging
import os
from unittest.mock import patch

import pytest
from colorlog import ColoredFormatter

from infinitecal.engine_logging import (
    ENGINE_MODULES,
    SUPPRESSED_LOGGERS,
    build_console_handler,
    configure_engine_logging,
    get_logging_status,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_logger_levels():
    """Put root and engine logger levels back after each test."""
    names = ["", *ENGINE_MODULES, *SUPPRESSED_LOGGERS]
    saved = {name: logging.getLogger(name).level for name in names}
    with patch.dict(os.environ):
        os.environ.pop("INFINITECAL_DEBUG", None)
        os.environ.pop("INFINITECAL_LOG_LEVEL", None)
        yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


class TestConfigureEngineLogging:
    """Tests for configure_engine_logging function."""

    def test_default_production_mode(self):
        configure_engine_logging()

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("infinitecal").level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_debug_mode(self):
        configure_engine_logging(debug_mode=True)

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("infinitecal.events.event_loader").level == logging.DEBUG
        # Third-party loggers stay quiet in debug mode
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_force_debug_overrides_debug_mode(self):
        configure_engine_logging(debug_mode=True, force_debug=False)
        assert logging.getLogger("infinitecal").level == logging.INFO

    def test_env_debug(self):
        os.environ["INFINITECAL_DEBUG"] = "yes"
        configure_engine_logging()
        assert logging.getLogger("infinitecal").level == logging.DEBUG

    def test_env_log_level_sets_root_level(self):
        os.environ["INFINITECAL_LOG_LEVEL"] = "warning"
        configure_engine_logging()
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("infinitecal").level == logging.INFO


def test_console_handler_uses_colored_formatter():
    handler = build_console_handler(logging.DEBUG)
    assert handler.level == logging.DEBUG
    assert isinstance(handler.formatter, ColoredFormatter)


def test_get_logging_status():
    configure_engine_logging(debug_mode=True)
    status = get_logging_status()
    assert status["root"] == "DEBUG"
    assert status["infinitecal"] == "DEBUG"
    assert status["asyncio"] == "WARNING"
    assert {name: status[name] for name in SUPPRESSED_LOGGERS} == {
        name: "WARNING" for name in SUPPRESSED_LOGGERS
    }


def test_debug_mode_reaches_every_engine_module():
    configure_engine_logging(debug_mode=True)

    for name in ["infinitecal.viewport.layout", "infinitecal.calendar.composer", "infinitecal.core.async_utils"]:
        assert logging.getLogger(name).level == logging.DEBUG
