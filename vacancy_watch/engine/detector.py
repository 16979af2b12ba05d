"""Change detection against a time checkpoint.

Two strategies share one interface:

* ``FixedWindowStrategy`` always compares against ``cycle_started - lookback``.
  It keeps no state, so a slow feed can be reported by several cycles.
* ``MovingCheckpointStrategy`` compares against the checkpoint left by the
  previous cycle. Reading the threshold, filtering and advancing the
  checkpoint happen under one lock, so concurrent cycles see disjoint
  thresholds. The checkpoint advances to the newest reported date, capped at
  ``cycle_started + skew_tolerance`` so one misdated entry cannot push it
  into the future; only entries dated beyond that cap can be reported again.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Iterable, Protocol

import structlog

from ..config import CheckpointMode
from .parser import ListingRecord

MOVING_CHECKPOINT_NAME = "moving"
DEFAULT_SKEW_TOLERANCE = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def detect(items: Iterable[ListingRecord], threshold: datetime) -> list[ListingRecord]:
    """Return the records published strictly after ``threshold``, in input order."""

    threshold = ensure_utc(threshold)
    return [
        item
        for item in items
        if item.published_at is not None and item.published_at > threshold
    ]


class CheckpointStore(Protocol):
    def load_checkpoint(self, name: str) -> datetime | None: ...

    def save_checkpoint(self, name: str, value: datetime) -> None: ...


class CheckpointStrategy(ABC):
    """Pick the threshold for a cycle and filter the aggregated items."""

    mode: CheckpointMode

    @abstractmethod
    def detect(self, items: Iterable[ListingRecord], cycle_started: datetime) -> list[ListingRecord]:
        """Return the new records for a cycle that started at ``cycle_started``."""

    @property
    def checkpoint(self) -> datetime | None:
        return None


class FixedWindowStrategy(CheckpointStrategy):
    mode = CheckpointMode.FIXED_WINDOW

    def __init__(self, lookback: timedelta) -> None:
        self.lookback = lookback

    def detect(self, items: Iterable[ListingRecord], cycle_started: datetime) -> list[ListingRecord]:
        return detect(items, ensure_utc(cycle_started) - self.lookback)


class MovingCheckpointStrategy(CheckpointStrategy):
    mode = CheckpointMode.MOVING

    def __init__(
        self,
        initial: datetime,
        store: CheckpointStore | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        skew_tolerance: timedelta = DEFAULT_SKEW_TOLERANCE,
    ) -> None:
        self._lock = Lock()
        self._store = store
        self.skew_tolerance = skew_tolerance
        self.logger = logger or structlog.get_logger("vacancy_watch.detector")
        stored = store.load_checkpoint(MOVING_CHECKPOINT_NAME) if store is not None else None
        self._value = ensure_utc(stored) if stored is not None else ensure_utc(initial)

    @classmethod
    def from_lookback(
        cls,
        lookback: timedelta,
        store: CheckpointStore | None = None,
        now: datetime | None = None,
        skew_tolerance: timedelta = DEFAULT_SKEW_TOLERANCE,
    ) -> "MovingCheckpointStrategy":
        return cls(
            initial=(now or utcnow()) - lookback,
            store=store,
            skew_tolerance=skew_tolerance,
        )

    @property
    def checkpoint(self) -> datetime:
        with self._lock:
            return self._value

    def detect(self, items: Iterable[ListingRecord], cycle_started: datetime) -> list[ListingRecord]:
        with self._lock:
            threshold = self._value
            fresh = detect(items, threshold)
            started = ensure_utc(cycle_started)
            # items dated past the skew bound are reported but cannot drag the checkpoint along
            ceiling = started + self.skew_tolerance
            candidates = [threshold, started]
            candidates.extend(min(item.published_at, ceiling) for item in fresh)
            self._value = max(candidates)
            if self._store is not None:
                self._store.save_checkpoint(MOVING_CHECKPOINT_NAME, self._value)
            self.logger.info(
                "checkpoint_advanced",
                threshold=threshold.isoformat(),
                checkpoint=self._value.isoformat(),
                fresh=len(fresh),
            )
            return fresh

    def reset(self, value: datetime) -> datetime:
        """Move the checkpoint to ``value`` unconditionally (operator action)."""

        with self._lock:
            self._value = ensure_utc(value)
            if self._store is not None:
                self._store.save_checkpoint(MOVING_CHECKPOINT_NAME, self._value)
            return self._value


def build_strategy(
    mode: CheckpointMode,
    lookback: timedelta,
    store: CheckpointStore | None = None,
    skew_tolerance: timedelta = DEFAULT_SKEW_TOLERANCE,
) -> CheckpointStrategy:
    if mode is CheckpointMode.FIXED_WINDOW:
        return FixedWindowStrategy(lookback)
    if mode is CheckpointMode.MOVING:
        return MovingCheckpointStrategy.from_lookback(
            lookback, store=store, skew_tolerance=skew_tolerance
        )
    raise ValueError(f"Unknown checkpoint mode: {mode}")


__all__ = [
    "CheckpointStore",
    "CheckpointStrategy",
    "DEFAULT_SKEW_TOLERANCE",
    "FixedWindowStrategy",
    "MOVING_CHECKPOINT_NAME",
    "MovingCheckpointStrategy",
    "build_strategy",
    "detect",
    "ensure_utc",
    "utcnow",
]
