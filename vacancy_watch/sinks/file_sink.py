"""Append digests to a local text file."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from ..errors import SinkError
from .base import BaseSink


class FileSink(BaseSink):
    """Write each digest under a timestamped header, one file for all cycles."""

    name = "file"

    def __init__(self, output_dir: Path, filename: str = "digests.txt") -> None:
        self.output_dir = output_dir
        self.path = output_dir / filename
        self._lock = Lock()

    def deliver(self, subject: str, body: str) -> None:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        block = f"=== {subject} · {stamp} ===\n{body.rstrip()}\n\n"
        try:
            with self._lock:
                self.output_dir.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as stream:
                    stream.write(block)
        except OSError as exc:
            raise SinkError(self.name, f"cannot write {self.path}: {exc}") from exc


__all__ = ["FileSink"]
