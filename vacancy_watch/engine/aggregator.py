"""Concurrent fan-out over every configured feed."""

from __future__ import annotations

from concurrent.futures import Executor, Future, as_completed
from typing import Sequence

import structlog

from .fetcher import FeedFetcher
from .parser import ListingRecord


class Aggregator:
    """Run one fetch task per feed and merge whatever comes back.

    All tasks are joined before returning; a task that fails contributes no
    records and never aborts the others. Result order follows completion
    order and carries no meaning.
    """

    def __init__(
        self,
        feeds: Sequence[str],
        fetcher: FeedFetcher,
        executor: Executor,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.feeds = tuple(feeds)
        self.fetcher = fetcher
        self.executor = executor
        self.logger = logger or structlog.get_logger("vacancy_watch.aggregator")

    def collect(self) -> list[ListingRecord]:
        futures: dict[Future, str] = {
            self.executor.submit(self.fetcher.fetch, url): url for url in self.feeds
        }
        records: list[ListingRecord] = []
        failed = 0
        for future in as_completed(futures):
            url = futures[future]
            try:
                batch = future.result()
            except Exception as exc:  # noqa: BLE001
                failed += 1
                self.logger.error("feed_task_failed", feed=url, error=repr(exc))
                continue
            if not batch:
                failed += 1
                continue
            records.extend(batch)
        self.logger.info(
            "feeds_collected",
            feeds=len(self.feeds),
            empty_or_failed=failed,
            records=len(records),
        )
        return records


__all__ = ["Aggregator"]
