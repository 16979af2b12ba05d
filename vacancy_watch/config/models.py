"""Pydantic models used across the vacancy-watch configuration flow."""

from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

DEFAULT_FEEDS = [
    "https://jobs.dou.ua/vacancies/feeds/?category=Golang&exp=0-1",
    "https://jobs.dou.ua/vacancies/feeds/?exp=1-3&category=Golang",
]

_DURATION_PATTERN = re.compile(r"(?P<value>\d+)(?P<unit>[smhd])", re.IGNORECASE)
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(value: Any) -> timedelta:
    """Parse ``90m``, ``1h``, ``1d6h`` or a number of seconds into a timedelta."""

    if isinstance(value, timedelta):
        total = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        total = timedelta(seconds=float(value))
    elif isinstance(value, str):
        text = value.strip().lower()
        if not text:
            raise ValueError("duration cannot be empty")
        if text.isdigit():
            total = timedelta(seconds=int(text))
        else:
            total = timedelta()
            index = 0
            for match in _DURATION_PATTERN.finditer(text):
                if match.start() != index:
                    raise ValueError(f"unsupported duration format: {value}")
                unit = _DURATION_UNITS[match.group("unit").lower()]
                total += timedelta(**{unit: int(match.group("value"))})
                index = match.end()
            if index != len(text):
                raise ValueError(f"unsupported duration format: {value}")
    else:
        raise ValueError(f"unsupported duration value: {value!r}")
    if total <= timedelta():
        raise ValueError("duration must be greater than zero")
    return total


class CheckpointMode(str, Enum):
    """How the change detector chooses its threshold."""

    FIXED_WINDOW = "fixed_window"
    MOVING = "moving"


class ScheduleType(str, Enum):
    """Scheduler modes for the periodic detection cycle."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """Configuration describing when the detection cycle should run."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=900,
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class ServerConfig(BaseModel):
    """Bind address for the HTTP trigger surface."""

    host: str = "0.0.0.0"
    port: int = 8080

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("port must be between 1 and 65535")
        return value


class KafkaSinkConfig(BaseModel):
    """Message-bus sink settings."""

    enabled: bool = False
    brokers: list[str] = Field(default_factory=lambda: ["localhost:9092"])
    topic: str = "job_notifications"
    key: str = "job_notification"
    send_timeout: float = 10.0

    @model_validator(mode="after")
    def _require_brokers(self) -> "KafkaSinkConfig":
        if self.enabled and not self.brokers:
            raise ValueError("kafka sink requires at least one broker")
        if self.enabled and not self.topic:
            raise ValueError("kafka sink requires a topic")
        return self


class EmailSinkConfig(BaseModel):
    """Mailer sink settings; credentials usually arrive through the environment."""

    enabled: bool = False
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    sender: str = ""
    recipients: list[str] = Field(default_factory=list)
    use_tls: bool = True
    timeout: float = 30.0

    @field_validator("recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @model_validator(mode="after")
    def _require_endpoint(self) -> "EmailSinkConfig":
        if not self.enabled:
            return self
        if not self.host:
            raise ValueError("email sink requires an SMTP host")
        if not self.sender:
            raise ValueError("email sink requires a sender address")
        if not self.recipients:
            raise ValueError("email sink requires at least one recipient")
        return self


class FileSinkConfig(BaseModel):
    """Append digests to a text file under the outputs directory."""

    enabled: bool = False
    filename: str = "digests.txt"


class SinksConfig(BaseModel):
    kafka: KafkaSinkConfig = Field(default_factory=KafkaSinkConfig)
    email: EmailSinkConfig = Field(default_factory=EmailSinkConfig)
    file: FileSinkConfig = Field(default_factory=FileSinkConfig)


class WatchConfig(BaseModel):
    """Top-level configuration for the watcher."""

    feeds: list[str] = Field(default_factory=lambda: list(DEFAULT_FEEDS))
    checkpoint_mode: CheckpointMode = CheckpointMode.MOVING
    lookback: timedelta = Field(default=timedelta(hours=1))
    checkpoint_skew: timedelta = Field(
        default=timedelta(minutes=5),
        description="How far past the cycle start a listing date may move the moving checkpoint.",
    )
    fetch_timeout: float = 20.0
    user_agent: str = "vacancy-watch/0.1 (+https://github.com/vacancy-watch)"
    thread_pool_workers: int = 8
    persist_checkpoint: bool = True
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    sinks: SinksConfig = Field(default_factory=SinksConfig)
    outputs_dir: Path = Field(default=Path("data/outputs"))

    @field_validator("feeds", mode="before")
    @classmethod
    def _split_feeds(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("feeds")
    @classmethod
    def _check_feeds(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one feed URL is required")
        for url in value:
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"feed is not an http(s) URL: {url}")
        return value

    @field_validator("lookback", "checkpoint_skew", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> timedelta:
        return parse_duration(value)

    @field_serializer("lookback", "checkpoint_skew")
    def _dump_duration(self, value: timedelta) -> int:
        return int(value.total_seconds())

    @field_validator("fetch_timeout")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("fetch_timeout must be positive")
        return value

    @field_validator("thread_pool_workers")
    @classmethod
    def _check_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("thread_pool_workers must be >= 1")
        return value

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    def resolved_outputs_dir(self, base_dir: Path) -> Path:
        """Return the outputs directory relative to the project home."""

        if not self.outputs_dir.is_absolute():
            return (base_dir / self.outputs_dir).resolve()
        return self.outputs_dir


__all__ = [
    "CheckpointMode",
    "DEFAULT_FEEDS",
    "EmailSinkConfig",
    "FileSinkConfig",
    "KafkaSinkConfig",
    "ScheduleConfig",
    "ScheduleType",
    "ServerConfig",
    "SinksConfig",
    "WatchConfig",
    "parse_duration",
]
