"""
Settings for preserve.

Operator-level configuration (logging, default plugin module) is read from
``PRESERVE_*`` environment variables and an optional ``.env`` file.  Plugin
settings are *not* configured here: they travel with each request and are
opaque to the core.

Examples:
    >>> from preserve.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.log_level
    'WARNING'

Tags:
    settings, configuration, pydantic, environment, preserve
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Rendering of operator log lines."""

    AUTO = "auto"
    JSON = "json"
    CONSOLE = "console"


class PreserveSettings(BaseSettings):
    """preserve configuration.

    Fields
    ──────
    log_level        : structlog level (DEBUG, INFO, WARNING, ERROR)
    log_format       : auto (JSON unless stderr is a tty), json, or console
    default_plugins  : plugin module used by the CLI when none is given
    """

    model_config = SettingsConfigDict(
        env_prefix="PRESERVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="WARNING", description="Log level")
    log_format: LogFormat = Field(default=LogFormat.AUTO)
    default_plugins: str | None = Field(
        default=None,
        description="Plugin module (``package.module[:attr]``) used by the CLI by default",
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @property
    def json_logs(self) -> bool | None:
        """Translate ``log_format`` into the ``configure_logging`` flag."""
        if self.log_format == LogFormat.JSON:
            return True
        if self.log_format == LogFormat.CONSOLE:
            return False
        return None


_settings_cache: dict[str, PreserveSettings] = {}


def get_settings(*, _force_reload: bool = False) -> PreserveSettings:
    """Load, validate, and cache a :class:`PreserveSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = PreserveSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop the cached settings (for tests and CLI option overrides)."""
    _settings_cache.clear()


__all__ = [
    "LogFormat",
    "PreserveSettings",
    "get_settings",
    "clear_settings_cache",
]
