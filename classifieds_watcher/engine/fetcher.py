"""Rate-limited HTTP fetching of result and detail pages."""

from __future__ import annotations

import time
from collections import deque
from datetime import timedelta
from threading import Lock
from typing import Callable

import httpx
import structlog
from selectolax.parser import HTMLParser

from ..config import FetcherSettings


class FetchError(RuntimeError):
    """A page could not be fetched with a trustworthy body."""


class QueryExecutor:
    """Execute GET requests within a per-site request budget.

    The owning site parser calls :meth:`initialize` once with its budget
    (``allowed_requests_per_timespan`` requests per
    ``time_to_wait_between_max_requests``) and the sentinel text a blocked
    or error page contains.
    """

    def __init__(
        self,
        settings: FetcherSettings | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.settings = settings or FetcherSettings()
        self.logger = logger or structlog.get_logger("classifieds_watcher.fetcher")
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=self.settings.timeout,
            headers={"User-Agent": self.settings.user_agent},
        )
        self._sleep = sleep
        self._monotonic = monotonic
        self._lock = Lock()
        self._request_times: deque[float] = deque()
        self._window: float | None = None
        self._allowed: int | None = None
        self._invalid_html: str | None = None

    @property
    def initialized(self) -> bool:
        return self._window is not None

    def initialize(
        self,
        time_to_wait_between_max_requests: timedelta,
        allowed_requests_per_timespan: int,
        invalid_html: str,
    ) -> None:
        if self.initialized:
            raise RuntimeError("QueryExecutor is already initialized")
        if allowed_requests_per_timespan < 1:
            raise ValueError("allowed_requests_per_timespan must be >= 1")
        self._window = time_to_wait_between_max_requests.total_seconds()
        self._allowed = allowed_requests_per_timespan
        self._invalid_html = invalid_html
        self.logger.debug(
            "query_executor_initialized",
            window_seconds=self._window,
            allowed_requests=self._allowed,
        )

    def close(self) -> None:
        self._client.close()

    def get_html(self, url: str) -> HTMLParser:
        if not self.initialized:
            raise RuntimeError("QueryExecutor.initialize must be called before fetching")
        last_error: Exception | None = None
        for attempt in range(1, self.settings.max_attempts + 1):
            self._acquire_slot()
            try:
                response = self._client.get(url)
            except httpx.HTTPError as exc:
                self.logger.warning("fetch_error", url=url, attempt=attempt, error=str(exc))
                last_error = exc
            else:
                if response.status_code >= 400:
                    self.logger.warning(
                        "fetch_bad_status", url=url, attempt=attempt, status=response.status_code
                    )
                    last_error = FetchError(f"Unexpected status {response.status_code}")
                elif self._invalid_html and self._invalid_html in response.text:
                    self.logger.warning("fetch_invalid_html", url=url, attempt=attempt)
                    last_error = FetchError("Response contains invalid HTML marker")
                else:
                    return HTMLParser(response.text)
            if attempt < self.settings.max_attempts:
                # Back off for a whole window before trying again
                self._sleep(self._window)

        raise FetchError(
            f"Fetch failed after {self.settings.max_attempts} attempts: {url}"
        ) from last_error

    def _acquire_slot(self) -> None:
        with self._lock:
            now = self._monotonic()
            while self._request_times and now - self._request_times[0] >= self._window:
                self._request_times.popleft()
            if len(self._request_times) >= self._allowed:
                wait = self._window - (now - self._request_times[0])
                if wait > 0:
                    self.logger.debug("rate_limit_wait", seconds=round(wait, 2))
                    self._sleep(wait)
                self._request_times.popleft()
                now = self._monotonic()
            self._request_times.append(now)


__all__ = ["FetchError", "QueryExecutor"]
