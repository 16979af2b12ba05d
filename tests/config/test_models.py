from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from vacancy_watch.config import (
    DEFAULT_FEEDS,
    CheckpointMode,
    EmailSinkConfig,
    KafkaSinkConfig,
    ScheduleConfig,
    ScheduleType,
    WatchConfig,
    parse_duration,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1h", timedelta(hours=1)),
        ("90m", timedelta(minutes=90)),
        ("1d6h", timedelta(days=1, hours=6)),
        ("45S", timedelta(seconds=45)),
        ("3600", timedelta(hours=1)),
        (120, timedelta(minutes=2)),
        (timedelta(minutes=5), timedelta(minutes=5)),
    ],
)
def test_parse_duration_accepts_supported_forms(raw, expected) -> None:
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "soon", "1h30", "h1", "0m", 0, -5, None, True])
def test_parse_duration_rejects_invalid(raw) -> None:
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_watch_config_defaults() -> None:
    config = WatchConfig()
    assert config.feeds == DEFAULT_FEEDS
    assert config.checkpoint_mode is CheckpointMode.MOVING
    assert config.lookback == timedelta(hours=1)
    assert config.checkpoint_skew == timedelta(minutes=5)
    assert config.schedule.type is ScheduleType.INTERVAL
    assert not any(
        (config.sinks.kafka.enabled, config.sinks.email.enabled, config.sinks.file.enabled)
    )


def test_watch_config_splits_comma_separated_feeds() -> None:
    config = WatchConfig(feeds=" https://a.example/rss , https://b.example/rss,")
    assert config.feeds == ["https://a.example/rss", "https://b.example/rss"]


@pytest.mark.parametrize("feeds", [[], ["ftp://a.example/rss"], ["not a url"]])
def test_watch_config_rejects_bad_feeds(feeds) -> None:
    with pytest.raises(ValidationError):
        WatchConfig(feeds=feeds)


def test_watch_config_rejects_bad_numbers() -> None:
    with pytest.raises(ValidationError):
        WatchConfig(fetch_timeout=0)
    with pytest.raises(ValidationError):
        WatchConfig(thread_pool_workers=0)
    with pytest.raises(ValidationError):
        WatchConfig(server={"port": 70000})


def test_lookback_dumps_as_seconds_and_reloads() -> None:
    config = WatchConfig(lookback="90m", checkpoint_mode="fixed_window", checkpoint_skew="2m")
    payload = config.model_dump(mode="json")
    assert payload["lookback"] == 5400
    assert payload["checkpoint_skew"] == 120
    assert payload["checkpoint_mode"] == "fixed_window"
    assert WatchConfig.model_validate(payload) == config


def test_resolved_outputs_dir(tmp_path: Path) -> None:
    relative = WatchConfig(outputs_dir="out")
    assert relative.resolved_outputs_dir(tmp_path) == (tmp_path / "out").resolve()
    absolute = WatchConfig(outputs_dir=tmp_path / "abs")
    assert absolute.resolved_outputs_dir(Path("/elsewhere")) == tmp_path / "abs"


def test_email_sink_requires_endpoint_when_enabled() -> None:
    with pytest.raises(ValidationError):
        EmailSinkConfig(enabled=True, host="smtp.example.com", sender="bot@example.com")
    config = EmailSinkConfig(
        enabled=True,
        host="smtp.example.com",
        sender="bot@example.com",
        recipients="ops@example.com, dev@example.com",
    )
    assert config.recipients == ["ops@example.com", "dev@example.com"]
    assert EmailSinkConfig().enabled is False


def test_kafka_sink_requires_brokers_when_enabled() -> None:
    with pytest.raises(ValidationError):
        KafkaSinkConfig(enabled=True, brokers=[])
    assert KafkaSinkConfig(enabled=True).brokers == ["localhost:9092"]


def test_schedule_config_validates_value_type() -> None:
    with pytest.raises(ValidationError):
        ScheduleConfig(type=ScheduleType.CRON, value=5)
    with pytest.raises(ValidationError):
        ScheduleConfig(type=ScheduleType.INTERVAL, value="often")
    assert ScheduleConfig(type=ScheduleType.ONCE, value=None).value is None
