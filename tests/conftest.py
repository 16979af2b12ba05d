"""Shared fixtures: config builders, feed fakes and sink doubles."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping
from xml.sax.saxutils import escape

import httpx
import pytest

from vacancy_watch.config import ConfigLocator, ConfigRepository, WatchConfig
from vacancy_watch.engine import Aggregator, FeedFetcher, ListingRecord
from vacancy_watch.errors import SinkError
from vacancy_watch.sinks import BaseSink

FEED_A = "https://feeds.example.com/golang-junior"
FEED_B = "https://feeds.example.com/golang-middle"

RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Job Feed</title>
    <link>https://example.com/jobs</link>
    <description>Test job listings</description>
{items}
  </channel>
</rss>
"""

ITEM_TEMPLATE = """    <item>
      <title>{title}</title>
      <link>{link}</link>
      <description>Join our growing team</description>
{pub}    </item>"""


def rss_feed(entries: Iterable[tuple[str, str, datetime | str | None]]) -> bytes:
    """Build an RSS 2.0 document; a ``None`` date omits ``pubDate``."""

    blocks = []
    for title, link, published in entries:
        if published is None:
            pub = ""
        elif isinstance(published, datetime):
            pub = f"      <pubDate>{format_datetime(published, usegmt=True)}</pubDate>\n"
        else:
            pub = f"      <pubDate>{escape(published)}</pubDate>\n"
        blocks.append(ITEM_TEMPLATE.format(title=escape(title), link=escape(link), pub=pub))
    return RSS_TEMPLATE.format(items="\n".join(blocks)).encode("utf-8")


def at_second(value: datetime) -> datetime:
    """RSS dates carry whole seconds; keep expectations comparable."""

    return value.replace(microsecond=0)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("VACANCY_WATCH_HOME", str(tmp_path))
    for variable in (
        "VACANCY_WATCH_FEEDS",
        "VACANCY_WATCH_CHECKPOINT_MODE",
        "VACANCY_WATCH_LOOKBACK",
        "VACANCY_WATCH_CHECKPOINT_SKEW",
        "VACANCY_WATCH_KAFKA_BROKERS",
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USER",
        "SMTP_PASS",
        "ALERT_EMAIL",
    ):
        monkeypatch.delenv(variable, raising=False)
    return tmp_path


@pytest.fixture
def now() -> datetime:
    return at_second(datetime.now(timezone.utc))


@pytest.fixture
def make_record() -> Callable[..., ListingRecord]:
    def _builder(
        title: str = "Golang Engineer",
        published_at: datetime | None = None,
        link: str | None = None,
        published_raw: str | None = None,
    ) -> ListingRecord:
        return ListingRecord(
            title=title,
            link=link or f"https://example.com/job/{title.lower().replace(' ', '-')}",
            published_raw=published_raw
            if published_raw is not None
            else (format_datetime(published_at, usegmt=True) if published_at else ""),
            published_at=published_at,
        )

    return _builder


@pytest.fixture
def sample_config() -> Callable[..., WatchConfig]:
    def _builder(**overrides: Any) -> WatchConfig:
        base: dict[str, Any] = {"feeds": [FEED_A, FEED_B], "lookback": "1h"}
        base.update(overrides)
        return WatchConfig.model_validate(base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    locator = ConfigLocator(project_root=tmp_path)
    return ConfigRepository(locator, environ={})


Route = bytes | int | Exception | Callable[[httpx.Request], httpx.Response]


def feed_transport(routes: Mapping[str, Route]) -> httpx.MockTransport:
    """Serve canned feed bodies, status codes or transport errors per URL."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="no such feed")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route, text="upstream error")
        if isinstance(route, bytes):
            return httpx.Response(
                200, content=route, headers={"Content-Type": "application/rss+xml"}
            )
        return route(request)

    return httpx.MockTransport(handler)


class QuietLogger:
    """Logger double accepting any structlog-style call."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict]] = []

    def bind(self, **_kwargs: Any) -> "QuietLogger":
        return self

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        self.events.append((level, event, kwargs))

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)

    def exception(self, event: str, **kwargs: Any) -> None:
        self._log("exception", event, **kwargs)


@pytest.fixture
def quiet_logger() -> QuietLogger:
    return QuietLogger()


@pytest.fixture
def build_fetcher(quiet_logger: QuietLogger) -> Callable[[Mapping[str, Route]], FeedFetcher]:
    created: list[FeedFetcher] = []

    def _builder(routes: Mapping[str, Route]) -> FeedFetcher:
        fetcher = FeedFetcher(
            timeout=5,
            transport=feed_transport(routes),
            logger_factory=lambda _url: quiet_logger,
        )
        created.append(fetcher)
        return fetcher

    yield _builder
    for fetcher in created:
        fetcher.close()


@pytest.fixture
def build_aggregator(build_fetcher) -> Callable[..., Aggregator]:
    from concurrent.futures import ThreadPoolExecutor

    executors: list[ThreadPoolExecutor] = []

    def _builder(routes: Mapping[str, Route], feeds: Iterable[str] | None = None) -> Aggregator:
        executor = ThreadPoolExecutor(max_workers=4)
        executors.append(executor)
        return Aggregator(list(feeds or routes.keys()), build_fetcher(routes), executor)

    yield _builder
    for executor in executors:
        executor.shutdown(wait=True)


class RecordingSink(BaseSink):
    name = "recording"

    def __init__(self) -> None:
        self.deliveries: list[tuple[str, str]] = []
        self.closed = False

    def deliver(self, subject: str, body: str) -> None:
        self.deliveries.append((subject, body))

    def close(self) -> None:
        self.closed = True


class FailingSink(BaseSink):
    name = "broken-bus"

    def __init__(self) -> None:
        self.attempts = 0

    def deliver(self, subject: str, body: str) -> None:
        self.attempts += 1
        raise SinkError(self.name, "broker unreachable")


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


__all__ = [
    "FEED_A",
    "FEED_B",
    "FailingSink",
    "QuietLogger",
    "RecordingSink",
    "at_second",
    "feed_transport",
    "rss_feed",
]
