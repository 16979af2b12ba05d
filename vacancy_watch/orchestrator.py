"""Dispatch trigger wiring together aggregation, detection, formatting and sinks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

import structlog

from .config import ScheduleConfig
from .engine import Aggregator, CheckpointStrategy, ListingRecord, digest_subject, format_digest
from .engine.detector import utcnow
from .errors import SinkError
from .infra import SQLiteManager
from .logging_conf import configure_logging
from .sinks import BaseSink


class Outcome(str, Enum):
    """How a cycle ended; empty results are outcomes, not errors."""

    DELIVERED = "delivered"
    NOTHING_NEW = "nothing_new"
    NOTHING_FOUND = "nothing_found"


@dataclass(slots=True)
class CycleResult:
    outcome: Outcome
    started_at: datetime
    digest: str = ""
    items: list[ListingRecord] = field(default_factory=list)
    fetched: int = 0
    sink_failures: dict[str, str] = field(default_factory=dict)


class Orchestrator:
    """Run detection cycles and hand digests to the configured sinks.

    ``run_new`` advances the checkpoint owned by ``strategy``; sink failures
    are logged and reported in the result but never undo that advance.
    ``run_all`` reports every current item and touches neither the
    checkpoint nor the sinks.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        strategy: CheckpointStrategy,
        sinks: Sequence[BaseSink] = (),
        storage: SQLiteManager | None = None,
        scheduler=None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.aggregator = aggregator
        self.strategy = strategy
        self.sinks = list(sinks)
        self.storage = storage
        self.scheduler = scheduler
        self.clock = clock
        self.logger = configure_logging().bind(component="orchestrator")

    # ------------------------------------------------------------------
    def run_new(self) -> CycleResult:
        started = self.clock()
        items = self.aggregator.collect()
        fresh = self.strategy.detect(items, started)

        if not fresh:
            outcome = Outcome.NOTHING_FOUND if not items else Outcome.NOTHING_NEW
            self.logger.info("cycle_nothing_new", fetched=len(items), outcome=outcome.value)
            result = CycleResult(outcome=outcome, started_at=started, fetched=len(items))
            self._record(result)
            return result

        digest = format_digest(fresh)
        failures = self._dispatch(digest_subject(len(fresh)), digest)
        result = CycleResult(
            outcome=Outcome.DELIVERED,
            started_at=started,
            digest=digest,
            items=fresh,
            fetched=len(items),
            sink_failures=failures,
        )
        self.logger.info(
            "cycle_completed",
            fetched=len(items),
            fresh=len(fresh),
            sinks=len(self.sinks),
            sink_failures=len(failures),
        )
        self._record(result)
        return result

    def run_all(self) -> CycleResult:
        started = self.clock()
        items = self.aggregator.collect()
        if not items:
            self.logger.info("cycle_nothing_found")
            return CycleResult(outcome=Outcome.NOTHING_FOUND, started_at=started)
        return CycleResult(
            outcome=Outcome.DELIVERED,
            started_at=started,
            digest=format_digest(items),
            items=items,
            fetched=len(items),
        )

    def run_scheduled(self) -> None:
        """Timer callback; keeps the scheduler thread alive on unexpected errors."""

        try:
            self.run_new()
        except Exception:  # noqa: BLE001
            self.logger.exception("scheduled_cycle_failed")

    # ------------------------------------------------------------------
    def register_schedule(self, schedule: ScheduleConfig) -> None:
        if self.scheduler is None:
            raise RuntimeError("Orchestrator was built without a scheduler")
        self.scheduler.schedule_cycle(schedule, self.run_scheduled)
        self.scheduler.start()

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown()
        for sink in self.sinks:
            try:
                sink.close()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("sink_close_failed", sink=sink.name, error=str(exc))
        self.aggregator.fetcher.close()
        if self.storage is not None:
            self.storage.close()

    # ------------------------------------------------------------------
    def _dispatch(self, subject: str, digest: str) -> dict[str, str]:
        failures: dict[str, str] = {}
        for sink in self.sinks:
            try:
                sink.deliver(subject, digest)
            except SinkError as exc:
                failures[sink.name] = str(exc)
                self.logger.error("sink_delivery_failed", sink=sink.name, error=str(exc))
            except Exception as exc:  # noqa: BLE001
                failures[sink.name] = repr(exc)
                self.logger.exception("sink_crashed", sink=sink.name)
            else:
                self.logger.info("sink_delivered", sink=sink.name)
        return failures

    def _record(self, result: CycleResult) -> None:
        if self.storage is None:
            return
        self.storage.record_cycle(
            started_at=result.started_at,
            mode=self.strategy.mode.value,
            fetched=result.fetched,
            fresh=len(result.items),
            outcome=result.outcome.value,
            sink_failures=result.sink_failures,
        )


__all__ = ["CycleResult", "Orchestrator", "Outcome"]
