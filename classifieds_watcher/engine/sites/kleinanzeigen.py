"""Extraction rules for kleinanzeigen.de result and listing pages."""

from __future__ import annotations

from datetime import timedelta
from urllib.parse import urljoin, urlparse

from selectolax.parser import HTMLParser, Node

from ..parser import SiteParser

BASE_URL = "https://www.kleinanzeigen.de"


def _text(node: Node | None) -> str | None:
    if node is None:
        return None
    return node.text(separator=" ", strip=True)


class KleinanzeigenParser(SiteParser):
    """Selectors for the kleinanzeigen.de search result list and ad pages."""

    RESULT_ITEMS = "#srchrslt-adtable > li"
    RESULT_ARTICLE = "article.aditem"
    RESULT_DATE = ".aditem-main--top--right"
    RESULT_PRICE = ".aditem-main--middle--price-shipping--price"
    TITLE = "#viewad-title"
    DESCRIPTION = "#viewad-description-text"
    PAGINATION = "a.pagination-page"

    @property
    def time_to_wait_between_max_requests(self) -> timedelta:
        return timedelta(seconds=60)

    @property
    def allowed_requests_per_timespan(self) -> int:
        return 40

    @property
    def invalid_html(self) -> str:
        return "Ups, bist Du ein Mensch?"

    def ensure_valid_html(self, result_page: HTMLParser) -> bool:
        if result_page.body is None:
            return False
        return self.invalid_html not in (result_page.html or "")

    def get_additional_pages(self, result_page: HTMLParser) -> list[str]:
        pages: list[str] = []
        for node in result_page.css(self.PAGINATION):
            href = (node.attributes.get("href") or "").strip()
            if not href:
                continue
            url = urljoin(BASE_URL, href)
            if url not in pages:
                pages.append(url)
        return pages

    def parse_results(self, result_page: HTMLParser) -> list[Node] | None:
        if result_page.css_first("#srchrslt-adtable") is None:
            return None
        return result_page.css(self.RESULT_ITEMS)

    def should_skip_result(self, result: Node) -> bool:
        # Ad slots between listings carry no article with a target
        article = result.css_first(self.RESULT_ARTICLE)
        return article is None or not article.attributes.get("data-href")

    def parse_result_link(self, result: Node) -> str:
        article = result.css_first(self.RESULT_ARTICLE)
        href = (article.attributes.get("data-href") or "").strip() if article else ""
        link = urljoin(BASE_URL, href)
        parsed = urlparse(link)
        if not href or parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Malformed result link: {href!r}")
        return link

    def parse_result_date(self, result: Node) -> str | None:
        return _text(result.css_first(self.RESULT_DATE))

    def parse_result_price(self, result: Node) -> str | None:
        return _text(result.css_first(self.RESULT_PRICE))

    def parse_title(self, document: HTMLParser) -> str | None:
        return _text(document.css_first(self.TITLE))

    def parse_description_text(self, document: HTMLParser) -> str | None:
        return _text(document.css_first(self.DESCRIPTION))


__all__ = ["BASE_URL", "KleinanzeigenParser"]
