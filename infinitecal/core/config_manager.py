"""Configuration management for the infinitecal engine.

Values come from, in increasing precedence: model defaults, an optional
YAML file, and ``INFINITECAL_*`` environment variables (optionally seeded
from a ``.env`` file that never overrides the real environment).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "INFINITECAL_"


class EngineConfig(BaseModel):
    """Tunables of the calendar engine."""

    # Loader / cache
    cache_capacity: int = Field(default=50, ge=1, description="Max distinct cached months")
    preload_buffer: int = Field(default=2, ge=0, description="Months preloaded per side")
    jump_threshold: int = Field(default=3, ge=1, description="Center shift treated as a jump")
    jump_range: int = Field(default=3, ge=0, description="Months loaded per side after a jump")
    max_retries: int = Field(default=3, ge=0, description="Retries after a failed fetch")
    retry_base_delay: float = Field(default=1.0, ge=0, description="Retry delay unit (s)")

    # Viewport election
    debounce_seconds: float = Field(default=0.15, ge=0, description="Election debounce (s)")
    election_threshold: float = Field(default=0.3, ge=0, description="Min score to switch")
    week_bonus: float = Field(default=0.1, ge=0, description="Score bonus per visible week")

    # Scroll gate
    scroll_threshold: float = Field(default=100.0, ge=0, description="Edge distance (px)")
    scroll_cooldown_seconds: float = Field(default=0.1, ge=0, description="Trigger cool-down (s)")
    bounce_tolerance: float = Field(default=10.0, ge=0, description="Overscroll tolerance (px)")

    # Layout
    day_cell_height: float = Field(default=60.0, gt=0, description="Week row height (px)")
    header_height: float = Field(default=100.0, ge=0, description="Header height (px)")
    min_calendar_height: float = Field(default=400.0, ge=0, description="Min height (px)")

    log_level: str = Field(default="INFO", description="Logging level name")

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> EngineConfig:
        """Create a config from a plain mapping.

        Raises:
            ConfigError: If a value fails validation
        """
        try:
            config = cls.model_validate(data or {})
        except ValidationError as e:
            raise ConfigError(f"Invalid engine configuration: {e}") from e
        return config.model_copy(update={"log_level": config.log_level.upper()})


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Returns an empty dict when the file is missing or unreadable
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", path, exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        if key:
            result[key] = val.strip().strip('"').strip("'")
    return result


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a mapping from a YAML file.

    Raises:
        ConfigError: If the file cannot be parsed or is not a mapping
    """
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(loaded).__name__}")
    return loaded


class ConfigManager:
    """Builds an EngineConfig from a YAML file, .env file and environment."""

    def __init__(self, env_file_path: Optional[Path] = None, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional .env path (defaults to .env in current directory)
            config_path: Optional YAML config file
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"
        self.config_path = config_path

    def load_env_file(self) -> list[str]:
        """Load .env entries that are not already set in the environment.

        Returns:
            Keys that were loaded from the .env file
        """
        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)
        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Collect ``INFINITECAL_<FIELD>`` variables for every config field.

        Values that do not coerce to the field's type are logged and ignored.
        """
        cfg: dict[str, Any] = {}
        for name, field_info in EngineConfig.model_fields.items():
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw == "":
                continue
            annotation = field_info.annotation
            try:
                if annotation in (int, "int"):
                    cfg[name] = int(raw)
                elif annotation in (float, "float"):
                    cfg[name] = float(raw)
                else:
                    cfg[name] = raw
            except ValueError:
                logger.warning("Invalid %s%s=%r; ignoring", ENV_PREFIX, name.upper(), raw)
        return cfg

    def load_full_config(self) -> EngineConfig:
        """Load YAML file, .env file and environment into a validated config."""
        data: dict[str, Any] = {}
        if self.config_path is not None:
            data.update(load_yaml_config(self.config_path))
        self.load_env_file()
        data.update(self.build_config_from_env())
        config = EngineConfig.from_dict(data)
        logger.debug("Engine configuration loaded: %s", config.model_dump())
        return config
