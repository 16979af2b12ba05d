"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides, validate_config
from .models import (
    DEFAULT_FEEDS,
    CheckpointMode,
    EmailSinkConfig,
    FileSinkConfig,
    KafkaSinkConfig,
    ScheduleConfig,
    ScheduleType,
    ServerConfig,
    SinksConfig,
    WatchConfig,
    parse_duration,
)

__all__ = [
    "CheckpointMode",
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_FEEDS",
    "EmailSinkConfig",
    "FileSinkConfig",
    "KafkaSinkConfig",
    "ScheduleConfig",
    "ScheduleType",
    "ServerConfig",
    "SinksConfig",
    "WatchConfig",
    "apply_env_overrides",
    "parse_duration",
    "validate_config",
]
