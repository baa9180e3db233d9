"""Configuration management for the status analytics service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1024, le=65535)


class AnalyticsSettings(BaseModel):
    max_events: int = Field(
        default=10_000,
        ge=1,
        description="Soft cap on the event log, enforced by the retention sweep.",
    )
    retention_interval_seconds: float = Field(default=24 * 60 * 60, gt=0)
    retention_enabled: bool = Field(default=True)
    status_window_hours: float = Field(default=24, gt=0)


class MetricsSettings(BaseModel):
    namespace: str = Field(default="status_service")
    default_collectors: bool = Field(
        default=True,
        description="Register process, platform and GC collectors alongside custom series.",
    )
    strict_labels: bool = Field(
        default=False,
        description="Raise on invalid label values instead of logging and dropping them.",
    )

    @field_validator("namespace")
    @classmethod
    def _validate_namespace(cls, value: str) -> str:
        value = value.strip()
        if not value or not value.replace("_", "").isalnum() or value[0].isdigit():
            raise ValueError(f"Invalid metrics namespace: {value!r}")
        return value


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)


ENV_KEYS = {
    "host": "STATUS_HOST",
    "port": "STATUS_PORT",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "max_events": "ANALYTICS_MAX_EVENTS",
    "retention_interval": "ANALYTICS_RETENTION_INTERVAL_SECONDS",
    "retention_enabled": "ANALYTICS_RETENTION_ENABLED",
    "status_window": "ANALYTICS_STATUS_WINDOW_HOURS",
    "metrics_namespace": "METRICS_NAMESPACE",
    "metrics_default_collectors": "METRICS_DEFAULT_COLLECTORS",
    "metrics_strict_labels": "METRICS_STRICT_LABELS",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "analytics": {
            "max_events": _env_int(ENV_KEYS["max_events"], AnalyticsSettings().max_events),
            "retention_interval_seconds": _env_float(
                ENV_KEYS["retention_interval"],
                AnalyticsSettings().retention_interval_seconds,
            ),
            "retention_enabled": _env_bool(
                ENV_KEYS["retention_enabled"],
                AnalyticsSettings().retention_enabled,
            ),
            "status_window_hours": _env_float(
                ENV_KEYS["status_window"],
                AnalyticsSettings().status_window_hours,
            ),
        },
        "metrics": {
            "namespace": os.getenv(ENV_KEYS["metrics_namespace"], MetricsSettings().namespace),
            "default_collectors": _env_bool(
                ENV_KEYS["metrics_default_collectors"],
                MetricsSettings().default_collectors,
            ),
            "strict_labels": _env_bool(
                ENV_KEYS["metrics_strict_labels"],
                MetricsSettings().strict_labels,
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.logging.file:
        Path(settings.logging.file).parent.mkdir(parents=True, exist_ok=True)

    return settings
