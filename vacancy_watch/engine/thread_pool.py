"""Named thread pools used for concurrent feed fetching."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict

FETCH_POOL = "feeds"


class ThreadPoolManager:
    """Hand out one lazily created executor per pool name."""

    def __init__(self, default_workers: int = 8) -> None:
        self.default_workers = default_workers
        self._executors: Dict[str, ThreadPoolExecutor] = {}
        self._lock = Lock()

    def get(self, pool_name: str = FETCH_POOL, max_workers: int | None = None) -> ThreadPoolExecutor:
        with self._lock:
            if pool_name not in self._executors:
                self._executors[pool_name] = ThreadPoolExecutor(
                    max_workers=max_workers or self.default_workers,
                    thread_name_prefix=f"watch-{pool_name}",
                )
            return self._executors[pool_name]

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            for executor in self._executors.values():
                executor.shutdown(wait=wait)
            self._executors.clear()


__all__ = ["FETCH_POOL", "ThreadPoolManager"]
