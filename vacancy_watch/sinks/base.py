"""Notification sink contract."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseSink(ABC):
    """Uniform delivery contract so the orchestrator can fan a digest out.

    ``deliver`` raises ``SinkError`` on failure; the caller decides whether
    that matters.
    """

    name: str = "sink"

    @abstractmethod
    def deliver(self, subject: str, body: str) -> None:
        """Send one digest downstream."""

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseSink"]
