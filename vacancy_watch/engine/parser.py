"""Syndication feed parsing into normalized listing records."""

from __future__ import annotations

import calendar
import io
from dataclasses import dataclass
from datetime import datetime, timezone
from time import struct_time
from typing import Any

import feedparser

from ..errors import SourceError


@dataclass(frozen=True, slots=True)
class ListingRecord:
    """One job listing as published by a feed.

    ``published_at`` is ``None`` when the feed omits the date or it cannot be
    parsed; such records are never considered new.
    """

    title: str
    link: str
    published_raw: str
    published_at: datetime | None = None


def _struct_to_datetime(value: struct_time | None) -> datetime | None:
    # feedparser normalises *_parsed fields to UTC
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (OverflowError, ValueError, TypeError):
        return None


def _updated(entry: Any, key: str) -> Any:
    # plain reads of updated* fall back to published* with a DeprecationWarning
    return entry[key] if key in entry else None


class FeedParser:
    """Turn raw RSS/Atom bytes into ``ListingRecord`` objects."""

    def parse(self, raw: bytes | str) -> list[ListingRecord]:
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        # a stream keeps feedparser from treating the body as a URL or path
        parsed = feedparser.parse(io.BytesIO(raw))
        entries = list(parsed.get("entries") or [])
        if parsed.get("bozo") and not entries:
            reason = parsed.get("bozo_exception") or "not a syndication feed"
            raise SourceError(f"unparsable feed body: {reason}")
        return [self.to_record(entry) for entry in entries]

    @staticmethod
    def to_record(entry: Any) -> ListingRecord:
        title = str(entry.get("title") or "").strip()
        link = str(entry.get("link") or "").strip()
        published_raw = str(entry.get("published") or _updated(entry, "updated") or "").strip()
        published_at = _struct_to_datetime(
            entry.get("published_parsed") or _updated(entry, "updated_parsed")
        )
        return ListingRecord(
            title=title,
            link=link,
            published_raw=published_raw,
            published_at=published_at,
        )


__all__ = ["FeedParser", "ListingRecord"]
