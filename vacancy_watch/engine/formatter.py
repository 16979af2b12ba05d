"""Plain-text digest rendering."""

from __future__ import annotations

from typing import Iterable

from .parser import ListingRecord

DIGEST_SUBJECT = "New Job Postings"


def format_record(record: ListingRecord) -> str:
    return f"🔹 {record.title}\n📎 {record.link}\n🕒 {record.published_raw}"


def format_digest(items: Iterable[ListingRecord]) -> str:
    """Render records as three-line blocks separated by a blank line."""

    return "\n\n".join(format_record(item) for item in items)


def digest_subject(count: int) -> str:
    return f"{DIGEST_SUBJECT} ({count})"


__all__ = ["DIGEST_SUBJECT", "digest_subject", "format_digest", "format_record"]
