"""Exception hierarchy shared by the pipeline, sinks and configuration layer."""

from __future__ import annotations


class VacancyWatchError(Exception):
    """Base class for all errors raised by vacancy-watch."""


class SourceError(VacancyWatchError):
    """A single feed could not be fetched or parsed."""


class SinkError(VacancyWatchError):
    """A notification sink failed to deliver a digest."""

    def __init__(self, sink: str, message: str) -> None:
        super().__init__(f"{sink}: {message}")
        self.sink = sink


class ConfigError(VacancyWatchError):
    """Configuration is missing or invalid; the process must not start."""


__all__ = ["ConfigError", "SinkError", "SourceError", "VacancyWatchError"]
