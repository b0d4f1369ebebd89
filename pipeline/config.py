"""Configuration management for WOLRAM.

Loads configuration from:
1. wolram.toml in the working directory (defaults)
2. Environment variables (overrides)
"""

import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

from orchestrator.errors import ConfigError
from schemas.job import ModelTier, RetryConfig

# Load .env file if present
load_dotenv()

CONFIG_FILENAME = "wolram.toml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class WolramConfig:
    """Main configuration container."""

    api_key: str = ""
    default_model_tier: str = "sonnet"
    max_retries: int = 3
    base_delay_ms: int = 1000
    log_level: str = "WARNING"
    auto_commit: bool = False  # Opt in: commit the working tree after each job

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def model_tier(self) -> ModelTier:
        return ModelTier.parse(self.default_model_tier)

    def retry_config(self) -> RetryConfig:
        """Retry settings for new jobs."""
        return RetryConfig(max_retries=self.max_retries, base_delay_ms=self.base_delay_ms)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WolramConfig":
        """Create WolramConfig from dictionary.

        Unknown keys are ignored.

        Raises:
            ConfigError: If a value has the wrong type or is out of range.
        """
        known = {f.name: f for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            expected = type(getattr(cls, key))
            # bool is a subclass of int; keep them apart
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigError(f"{key} must be an integer, got {value!r}")
            if expected is not int and not isinstance(value, expected):
                raise ConfigError(f"{key} must be a {expected.__name__}, got {value!r}")
            values[key] = value

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: On the first invalid value.
        """
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay_ms < 0:
            raise ConfigError(f"base_delay_ms must be >= 0, got {self.base_delay_ms}")
        try:
            ModelTier.parse(self.default_model_tier)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")


def find_config_file() -> Path | None:
    """Find wolram.toml in the current directory.

    Returns:
        Path to wolram.toml or None if not found.
    """
    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists():
        return config_path
    return None


def load_config(config_path: Path | str | None = None) -> WolramConfig:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to wolram.toml

    Returns:
        WolramConfig with merged settings.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.
    """
    # Start with defaults
    config_data: dict[str, Any] = {}

    # Load from file if available
    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            try:
                with open(path, "rb") as f:
                    config_data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid {path.name}: {e}") from e

    # Apply environment variable overrides
    env_overrides = {
        "api_key": os.getenv("ANTHROPIC_API_KEY") or None,
        "max_retries": _int_or_none("WOLRAM_MAX_RETRIES"),
        "base_delay_ms": _int_or_none("WOLRAM_BASE_DELAY_MS"),
        "default_model_tier": os.getenv("WOLRAM_MODEL") or None,
        "log_level": os.getenv("WOLRAM_LOG_LEVEL") or None,
    }

    # Merge env overrides (only non-None values)
    for key, value in env_overrides.items():
        if value is not None:
            config_data[key] = value

    return WolramConfig.from_dict(config_data)


def _int_or_none(name: str) -> int | None:
    """Read an integer environment variable, or return None if unset."""
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


# Global config instance (lazy loaded)
_config: WolramConfig | None = None


def get_config() -> WolramConfig:
    """Get the global configuration instance.

    Returns:
        WolramConfig (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> WolramConfig:
    """Force reload of configuration.

    Returns:
        Fresh WolramConfig.
    """
    global _config
    _config = load_config()
    return _config
