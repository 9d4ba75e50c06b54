"""Per-site extraction rules."""

from __future__ import annotations

from ..fetcher import QueryExecutor
from ..parser import SiteParser
from .kleinanzeigen import KleinanzeigenParser

SITE_PARSERS: dict[str, type[SiteParser]] = {
    "kleinanzeigen": KleinanzeigenParser,
}


def build_site_parser(site: str, query_executor: QueryExecutor) -> SiteParser:
    try:
        parser_cls = SITE_PARSERS[site]
    except KeyError:
        raise ValueError(
            f"Unknown site '{site}', expected one of: {', '.join(sorted(SITE_PARSERS))}"
        ) from None
    return parser_cls(query_executor)


__all__ = ["KleinanzeigenParser", "SITE_PARSERS", "build_site_parser"]
