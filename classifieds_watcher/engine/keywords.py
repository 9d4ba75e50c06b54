"""Include/exclude keyword rules evaluated against listing text."""

from __future__ import annotations

from typing import Sequence

import structlog

DISJUNCTION_SEPARATOR = "|"

logger = structlog.get_logger("classifieds_watcher.keywords")


def _contains(text: str, keyword: str) -> bool:
    return keyword.casefold() in text.casefold()


def split_include_keywords(keywords: Sequence[str]) -> tuple[list[list[str]], list[str]]:
    """Partition include keywords into disjunction groups and plain keywords.

    ``"foo | bar"`` becomes the group ``["foo", "bar"]``.
    """

    groups: list[list[str]] = []
    plain: list[str] = []
    for keyword in keywords:
        if DISJUNCTION_SEPARATOR in keyword:
            groups.append([part.strip() for part in keyword.split(DISJUNCTION_SEPARATOR)])
        else:
            plain.append(keyword)
    return groups, plain


def contains_all_include_keywords(text: str, keywords: Sequence[str]) -> bool:
    if not keywords:
        return True
    groups, plain = split_include_keywords(keywords)
    for group in groups:
        if not any(_contains(text, keyword) for keyword in group):
            logger.debug("no_keyword_of_group_found", group=" | ".join(group))
            return False
    return all(_contains(text, keyword) for keyword in plain)


def contains_any_exclude_keyword(text: str, keywords: Sequence[str]) -> bool:
    return any(_contains(text, keyword) for keyword in keywords)


__all__ = [
    "contains_all_include_keywords",
    "contains_any_exclude_keyword",
    "split_include_keywords",
]
