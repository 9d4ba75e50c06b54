"""Engine components orchestrating fetch → parse → match → dedup."""

from .dedup import AlreadyProcessedUrl, AlreadyProcessedUrlsStore
from .fetcher import FetchError, QueryExecutor
from .parser import ParseError, Result, SiteParser
from .sites import SITE_PARSERS, build_site_parser
from .thread_pool import ThreadPoolManager

__all__ = [
    "AlreadyProcessedUrl",
    "AlreadyProcessedUrlsStore",
    "FetchError",
    "ParseError",
    "QueryExecutor",
    "Result",
    "SITE_PARSERS",
    "SiteParser",
    "ThreadPoolManager",
    "build_site_parser",
]
