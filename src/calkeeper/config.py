"""Configuration loading and validation.

Reads a ``calkeeper.toml`` file, resolves ``${VAR}`` references against the
environment, and returns a validated ``AppConfig``::

    [calendar]
    name = "MyCalendar"
    timezone = "Europe/Rome"
    color = "#FF00FF"

    [logging]
    level = "INFO"
    format = "text"
    file = "logs/calkeeper.log"
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from tzlocal import get_localzone_name

from calkeeper.models import MAGENTA, RGBColor, ensure_valid_timezone

DEFAULT_CALENDAR_NAME = "MyCalendar"
DEFAULT_CONFIG_FILENAME = "calkeeper.toml"

# Matches ${VAR_NAME}; names are alphanumeric plus underscore.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_LOG_FORMATS = ("text", "json")


class ConfigError(Exception):
    """Raised when configuration is missing, malformed, or invalid."""


def _host_timezone() -> str | None:
    return get_localzone_name()


class SchedulerConfig(BaseModel):
    """Settings the scheduler applies to every event it creates.

    ``timezone`` defaults to the host's zone; ``None`` leaves events floating.
    """

    model_config = ConfigDict(extra="forbid")

    calendar_name: str = DEFAULT_CALENDAR_NAME
    timezone: str | None = Field(default_factory=_host_timezone)
    color: RGBColor = MAGENTA

    @field_validator("calendar_name")
    @classmethod
    def _normalize_calendar_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("calendar_name must be a non-empty string")
        return normalized

    @field_validator("timezone")
    @classmethod
    def _normalize_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        ensure_valid_timezone(normalized)
        return normalized


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    file: str | None = None


@dataclass
class AppConfig:
    """Parsed and validated application configuration."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Non-string leaf values are returned
    unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    """Replace all ``${VAR_NAME}`` occurrences in *s* with env var values.

    Collects all missing variable names and reports them in a single error.
    """
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _parse_scheduler(section: Any) -> SchedulerConfig:
    if not isinstance(section, dict):
        raise ConfigError("[calendar] must be a TOML table")

    unknown = sorted(set(section) - {"name", "timezone", "color"})
    if unknown:
        raise ConfigError(f"Unknown key(s) in [calendar]: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    if "name" in section:
        kwargs["calendar_name"] = section["name"]
    if "timezone" in section:
        kwargs["timezone"] = section["timezone"]
    if "color" in section:
        kwargs["color"] = section["color"]

    try:
        return SchedulerConfig(**kwargs)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigError(f"Invalid [calendar] section: {details}") from exc


def _parse_logging(section: Any) -> LoggingConfig:
    if not isinstance(section, dict):
        raise ConfigError("[logging] must be a TOML table")

    level = str(section.get("level", "INFO")).upper()
    log_format = str(section.get("format", "text")).lower()
    if log_format not in _LOG_FORMATS:
        raise ConfigError(
            f"Invalid logging.format: {log_format!r}. Must be one of: {', '.join(_LOG_FORMATS)}"
        )

    log_file = section.get("file")
    if log_file is not None and (not isinstance(log_file, str) or not log_file.strip()):
        raise ConfigError("logging.file must be a non-empty string when set")

    return LoggingConfig(level=level, format=log_format, file=log_file)


def load_config(path: Path) -> AppConfig:
    """Load and validate a TOML config file.

    Parameters
    ----------
    path:
        Either the TOML file itself or a directory containing
        ``calkeeper.toml``.

    Returns
    -------
    AppConfig
        Fully parsed and validated configuration. Missing sections fall back
        to their defaults.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or holds invalid values.
    """
    toml_path = path / DEFAULT_CONFIG_FILENAME if path.is_dir() else path

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    data = resolve_env_vars(data)

    return AppConfig(
        scheduler=_parse_scheduler(data.get("calendar", {})),
        logging=_parse_logging(data.get("logging", {})),
    )
