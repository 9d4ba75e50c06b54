"""Site independent result-page pipeline and keyword matching."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterator

import structlog
from selectolax.parser import HTMLParser, Node

from ..config import Subscription
from .fetcher import QueryExecutor
from .keywords import contains_all_include_keywords, contains_any_exclude_keyword


class ParseError(RuntimeError):
    """Page structure no longer matches the site's extraction rules."""


@dataclass(frozen=True, slots=True)
class Result:
    """A listing stub extracted from a result page."""

    link: str
    creation_date: str = ""
    price: str = ""


class SiteParser(ABC):
    """Extraction rules for one classifieds site.

    Subclasses supply the request budget, the selectors for result and detail
    pages and pagination. :meth:`parse_links` and :meth:`is_match` are written
    once against these hooks.
    """

    NOT_AVAILABLE_MARKER = "Die gewünschte Anzeige ist nicht mehr verfügbar"

    def __init__(
        self,
        query_executor: QueryExecutor,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.logger = logger or structlog.get_logger("classifieds_watcher.parser")
        self._query_executor = query_executor
        self._query_executor.initialize(
            time_to_wait_between_max_requests=self.time_to_wait_between_max_requests,
            allowed_requests_per_timespan=self.allowed_requests_per_timespan,
            invalid_html=self.invalid_html,
        )

    # ------------------------------------------------------------------
    # Site specific configuration and extraction hooks
    # ------------------------------------------------------------------
    @property
    @abstractmethod
    def time_to_wait_between_max_requests(self) -> timedelta: ...

    @property
    @abstractmethod
    def allowed_requests_per_timespan(self) -> int: ...

    @property
    @abstractmethod
    def invalid_html(self) -> str: ...

    @abstractmethod
    def ensure_valid_html(self, result_page: HTMLParser) -> bool: ...

    @abstractmethod
    def get_additional_pages(self, result_page: HTMLParser) -> list[str]: ...

    @abstractmethod
    def parse_results(self, result_page: HTMLParser) -> list[Node] | None: ...

    @abstractmethod
    def should_skip_result(self, result: Node) -> bool: ...

    @abstractmethod
    def parse_result_link(self, result: Node) -> str:
        """Return the absolute listing URL; raise ``ValueError`` if malformed."""

    @abstractmethod
    def parse_result_date(self, result: Node) -> str | None: ...

    @abstractmethod
    def parse_result_price(self, result: Node) -> str | None: ...

    @abstractmethod
    def parse_title(self, document: HTMLParser) -> str | None: ...

    @abstractmethod
    def parse_description_text(self, document: HTMLParser) -> str | None: ...

    # ------------------------------------------------------------------
    @property
    def query_executor(self) -> QueryExecutor:
        return self._query_executor

    def parse_links(self, result_page: HTMLParser) -> Iterator[Result]:
        if not self.ensure_valid_html(result_page):
            self.logger.warning("invalid_html_skipped")
            return

        results = self.parse_results(result_page)
        if results is None:
            return

        for result in results:
            if self.should_skip_result(result):
                continue
            link = self.parse_result_link(result)
            date = self.parse_result_date(result)
            price = self.parse_result_price(result)
            yield Result(link=link, creation_date=date or "", price=price or "")

    def is_match(self, document: HTMLParser, subscription: Subscription) -> bool:
        html = document.html or ""
        if self.NOT_AVAILABLE_MARKER in html:
            self.logger.warning("listing_not_available", subscription=subscription.label)
            return False

        if subscription.include_keywords is None:
            raise ValueError("include_keywords cannot be None")
        if subscription.exclude_keywords is None:
            raise ValueError("exclude_keywords cannot be None")

        title = self.parse_title(document)
        if not title or not title.strip():
            self.logger.error("title_not_parsed", html=html)
            raise ParseError("Could not parse title")

        description = self.parse_description_text(document)
        if not description or not description.strip():
            self.logger.error("description_not_parsed", html=html)
            raise ParseError("Could not parse description")

        text = title + description
        includes_found = contains_all_include_keywords(text, subscription.include_keywords)
        excludes_found = contains_any_exclude_keyword(text, subscription.exclude_keywords)
        return includes_found and not excludes_found


__all__ = ["ParseError", "Result", "SiteParser"]
