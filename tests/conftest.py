"""Shared fixtures: fake collaborators, subscriptions and temporary repositories."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest
from selectolax.parser import HTMLParser, Node

from classifieds_watcher.config import ConfigLocator, ConfigRepository, Subscription
from classifieds_watcher.engine.fetcher import FetchError
from classifieds_watcher.engine.parser import SiteParser


class FakeQueryExecutor:
    """Serve canned HTML per URL and record what was requested."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.requested: list[str] = []
        self.init_calls: list[tuple[timedelta, int, str]] = []

    def initialize(self, time_to_wait_between_max_requests, allowed_requests_per_timespan, invalid_html):
        self.init_calls.append(
            (time_to_wait_between_max_requests, allowed_requests_per_timespan, invalid_html)
        )

    def get_html(self, url: str) -> HTMLParser:
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(f"no page for {url}")
        return HTMLParser(self.pages[url])

    def close(self) -> None:
        return


class ListSiteParser(SiteParser):
    """Minimal site rules over ``<ul id="results"><li data-link=...>`` markup."""

    def __init__(self, query_executor, valid: bool = True) -> None:
        self.valid = valid
        self.extracted: list[str] = []
        super().__init__(query_executor)

    @property
    def time_to_wait_between_max_requests(self) -> timedelta:
        return timedelta(seconds=10)

    @property
    def allowed_requests_per_timespan(self) -> int:
        return 5

    @property
    def invalid_html(self) -> str:
        return "blocked"

    def ensure_valid_html(self, result_page: HTMLParser) -> bool:
        return self.valid

    def get_additional_pages(self, result_page: HTMLParser) -> list[str]:
        return [node.attributes["href"] for node in result_page.css("a.page")]

    def parse_results(self, result_page: HTMLParser) -> list[Node] | None:
        if result_page.css_first("ul#results") is None:
            return None
        return result_page.css("ul#results > li")

    def should_skip_result(self, result: Node) -> bool:
        return "ad" in (result.attributes.get("class") or "").split()

    def parse_result_link(self, result: Node) -> str:
        link = result.attributes.get("data-link") or ""
        self.extracted.append(link)
        if not link.startswith("http"):
            raise ValueError(f"bad link {link!r}")
        return link

    def parse_result_date(self, result: Node) -> str | None:
        node = result.css_first(".date")
        return node.text(strip=True) if node else None

    def parse_result_price(self, result: Node) -> str | None:
        node = result.css_first(".price")
        return node.text(strip=True) if node else None

    def parse_title(self, document: HTMLParser) -> str | None:
        node = document.css_first("h1")
        return node.text(strip=True) if node else None

    def parse_description_text(self, document: HTMLParser) -> str | None:
        node = document.css_first("#description")
        return node.text(strip=True) if node else None


def result_page(*items: str, pages: Iterable[str] = ()) -> str:
    links = "".join(f'<a class="page" href="{href}">p</a>' for href in pages)
    return f"<html><body><ul id='results'>{''.join(items)}</ul>{links}</body></html>"


def result_item(link: str, date: str | None = "Today", price: str | None = "10 €", ad: bool = False) -> str:
    css = ' class="ad"' if ad else ""
    date_html = f'<span class="date">{date}</span>' if date is not None else ""
    price_html = f'<span class="price">{price}</span>' if price is not None else ""
    return f'<li{css} data-link="{link}">{date_html}{price_html}</li>'


def detail_page(title: str, description: str) -> str:
    return f"<html><body><h1>{title}</h1><div id='description'>{description}</div></body></html>"


@pytest.fixture
def fake_executor() -> FakeQueryExecutor:
    return FakeQueryExecutor()


@pytest.fixture
def list_parser(fake_executor: FakeQueryExecutor) -> ListSiteParser:
    return ListSiteParser(fake_executor)


@pytest.fixture
def make_subscription() -> Callable[..., Subscription]:
    def _builder(**overrides: Any) -> Subscription:
        base: dict[str, Any] = {
            "title": "Bikes",
            "query_url": "https://example.com/search",
            "include_keywords": [],
            "exclude_keywords": [],
        }
        base.update(overrides)
        return Subscription(**base)

    return _builder


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("CLASSIFIEDS_WATCHER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    return ConfigRepository(locator)


class Pages:
    """HTML builders for the markup understood by :class:`ListSiteParser`."""

    result_page = staticmethod(result_page)
    result_item = staticmethod(result_item)
    detail_page = staticmethod(detail_page)


@pytest.fixture
def pages() -> type[Pages]:
    return Pages


@pytest.fixture
def make_list_parser() -> Callable[..., ListSiteParser]:
    def _builder(executor: FakeQueryExecutor | None = None, **kwargs: Any) -> ListSiteParser:
        return ListSiteParser(executor or FakeQueryExecutor(), **kwargs)

    return _builder
