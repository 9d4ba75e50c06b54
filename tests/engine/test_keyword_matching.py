from __future__ import annotations

import pytest
from selectolax.parser import HTMLParser

from classifieds_watcher.engine.keywords import (
    contains_all_include_keywords,
    contains_any_exclude_keyword,
    split_include_keywords,
)
from classifieds_watcher.engine.parser import ParseError


def _doc(pages, title: str, description: str) -> HTMLParser:
    return HTMLParser(pages.detail_page(title, description))


def test_disjunction_group_satisfied_by_any_alternative(list_parser, pages, make_subscription) -> None:
    subscription = make_subscription(include_keywords=["foo | bar", "baz"])
    document = _doc(pages, "Selling baz", "with a bar attached")
    assert list_parser.is_match(document, subscription)


def test_disjunction_group_without_alternative_fails(list_parser, pages, make_subscription) -> None:
    subscription = make_subscription(include_keywords=["foo | bar", "baz"])
    document = _doc(pages, "Selling baz", "nothing else")
    assert not list_parser.is_match(document, subscription)


def test_all_plain_keywords_must_appear(list_parser, pages, make_subscription) -> None:
    subscription = make_subscription(include_keywords=["carbon", "shimano"])
    assert list_parser.is_match(_doc(pages, "Carbon frame", "SHIMANO groupset"), subscription)
    assert not list_parser.is_match(_doc(pages, "Carbon frame", "SRAM groupset"), subscription)


def test_exclude_keyword_rejects_regardless_of_includes(list_parser, pages, make_subscription) -> None:
    subscription = make_subscription(include_keywords=["bike"], exclude_keywords=["spam"])
    assert not list_parser.is_match(_doc(pages, "Bike", "pure SPAM offer"), subscription)


def test_empty_rules_match_everything(list_parser, pages, make_subscription) -> None:
    subscription = make_subscription()
    assert list_parser.is_match(_doc(pages, "Anything", "at all"), subscription)


def test_title_and_description_are_joined_without_separator(list_parser, pages, make_subscription) -> None:
    subscription = make_subscription(include_keywords=["endstart"])
    assert list_parser.is_match(_doc(pages, "The end.", "start of text"), subscription) is False
    assert list_parser.is_match(_doc(pages, "Theend", "start"), subscription)


def test_unavailable_listing_is_not_a_match(list_parser, make_subscription) -> None:
    document = HTMLParser(
        "<html><body><h1>x</h1><p>Die gewünschte Anzeige ist nicht mehr verfügbar</p></body></html>"
    )
    subscription = make_subscription(include_keywords=None)
    assert list_parser.is_match(document, subscription) is False


@pytest.mark.parametrize("field", ["include_keywords", "exclude_keywords"])
def test_null_keyword_lists_fail_loudly(list_parser, pages, make_subscription, field) -> None:
    subscription = make_subscription(**{field: None})
    with pytest.raises(ValueError):
        list_parser.is_match(_doc(pages, "Title", "Description"), subscription)


@pytest.mark.parametrize(
    ("title", "description"),
    [("", "Description"), ("   ", "Description"), ("Title", ""), ("Title", "  ")],
)
def test_blank_title_or_description_is_a_parse_error(
    list_parser, pages, make_subscription, title, description
) -> None:
    with pytest.raises(ParseError):
        list_parser.is_match(_doc(pages, title, description), make_subscription())


def test_missing_title_node_is_a_parse_error(list_parser, make_subscription) -> None:
    document = HTMLParser("<html><body><div id='description'>text</div></body></html>")
    with pytest.raises(ParseError):
        list_parser.is_match(document, make_subscription())


def test_split_include_keywords_trims_alternatives() -> None:
    groups, plain = split_include_keywords(["foo | bar ", "baz", " a|b|c"])
    assert groups == [["foo", "bar"], ["a", "b", "c"]]
    assert plain == ["baz"]


def test_keyword_helpers_are_case_insensitive() -> None:
    assert contains_all_include_keywords("Straße und BERG", ["berg", "STRASSE | straße"])
    assert contains_any_exclude_keyword("Defekter Rahmen", ["defekt"])
    assert not contains_any_exclude_keyword("anything", [])
    assert contains_all_include_keywords("anything", [])
