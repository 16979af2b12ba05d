"""HTTP retrieval of a single feed with per-source failure isolation."""

from __future__ import annotations

from typing import Callable

import httpx
import structlog

from ..errors import SourceError
from ..logging_conf import source_logger
from .parser import FeedParser, ListingRecord

DEFAULT_USER_AGENT = "vacancy-watch/0.1"


class FeedFetcher:
    """Fetch and parse one feed URL; never raises for source failures.

    The underlying ``httpx.Client`` is shared across worker threads. Each
    request is streamed inside a ``with`` block so the connection goes back
    to the pool on every exit path.
    """

    def __init__(
        self,
        timeout: float = 20.0,
        user_agent: str = DEFAULT_USER_AGENT,
        parser: FeedParser | None = None,
        transport: httpx.BaseTransport | None = None,
        logger_factory: Callable[[str], structlog.stdlib.BoundLogger] | None = None,
    ) -> None:
        self.parser = parser or FeedParser()
        self._logger_factory = logger_factory or source_logger
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, url: str) -> list[ListingRecord]:
        log = self._logger_factory(url)
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                body = response.read()
            records = self.parser.parse(body)
        except httpx.HTTPStatusError as exc:
            log.warning("feed_http_error", status=exc.response.status_code)
            return []
        except httpx.TimeoutException as exc:
            log.warning("feed_timeout", error=str(exc) or exc.__class__.__name__)
            return []
        except httpx.HTTPError as exc:
            log.warning("feed_transport_error", error=str(exc) or exc.__class__.__name__)
            return []
        except SourceError as exc:
            log.warning("feed_parse_error", error=str(exc))
            return []

        if not records:
            log.info("feed_empty")
            return []
        log.info("feed_fetched", count=len(records))
        return records


__all__ = ["DEFAULT_USER_AGENT", "FeedFetcher"]
