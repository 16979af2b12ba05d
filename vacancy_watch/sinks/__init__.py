"""Notification sinks and their factory."""

from __future__ import annotations

from pathlib import Path

from ..config import WatchConfig
from .base import BaseSink
from .email_sink import EmailSink
from .file_sink import FileSink
from .kafka_sink import KafkaSink


def build_sinks(config: WatchConfig, outputs_dir: Path) -> list[BaseSink]:
    """Instantiate every sink enabled in the configuration."""

    sinks: list[BaseSink] = []
    if config.sinks.kafka.enabled:
        sinks.append(KafkaSink(config.sinks.kafka))
    if config.sinks.email.enabled:
        sinks.append(EmailSink(config.sinks.email))
    if config.sinks.file.enabled:
        sinks.append(FileSink(outputs_dir, config.sinks.file.filename))
    return sinks


__all__ = ["BaseSink", "EmailSink", "FileSink", "KafkaSink", "build_sinks"]
