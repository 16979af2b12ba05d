"""Engine components orchestrating fetch → aggregate → detect → format."""

from .aggregator import Aggregator
from .detector import (
    CheckpointStrategy,
    FixedWindowStrategy,
    MovingCheckpointStrategy,
    build_strategy,
    detect,
)
from .fetcher import FeedFetcher
from .formatter import digest_subject, format_digest
from .parser import FeedParser, ListingRecord
from .thread_pool import FETCH_POOL, ThreadPoolManager

__all__ = [
    "Aggregator",
    "CheckpointStrategy",
    "FETCH_POOL",
    "FeedFetcher",
    "FeedParser",
    "FixedWindowStrategy",
    "ListingRecord",
    "MovingCheckpointStrategy",
    "ThreadPoolManager",
    "build_strategy",
    "detect",
    "digest_subject",
    "format_digest",
]
