"""Tests for index entry ordering."""

from __future__ import annotations

import pytest

from storyindex.models import DocsEntry, StoryEntry
from storyindex.sorting import sort_entries, story_sort


def _story(title: str, name: str = "Default", import_path: str | None = None) -> StoryEntry:
    path = import_path or f"./{title.replace('/', '-')}.stories.json"
    return StoryEntry(id=f"{title}--{name}".lower(), title=title, name=name, import_path=path)


def test_sort_entries_follows_discovery_order_without_sort_parameter() -> None:
    first = _story("Zeta", import_path="./b.stories.json")
    second = _story("Alpha", import_path="./a.stories.json")
    docs = DocsEntry(id="alpha--docs", title="Alpha", name="Docs", import_path="./a.stories.json")
    orphan = _story("Orphan", import_path="./elsewhere.stories.json")

    ordered = sort_entries(
        [orphan, second, docs, first],
        None,
        ["./b.stories.json", "./a.stories.json"],
    )

    assert ordered == [first, second, docs, orphan]


def test_sort_entries_alphabetical_uses_natural_title_order() -> None:
    entries = [_story("b/c"), _story("Item 10"), _story("a"), _story("Item 2"), _story("b/a")]

    ordered = sort_entries(entries, {"method": "alphabetical"}, [])

    assert [entry.title for entry in ordered] == ["a", "b/a", "b/c", "Item 2", "Item 10"]


def test_sort_entries_configure_keeps_discovery_order_for_unlisted_titles() -> None:
    entries = [_story("Second"), _story("First"), _story("Third")]

    ordered = sort_entries(entries, {"method": "configure"}, [])

    assert [entry.title for entry in ordered] == ["Second", "First", "Third"]


def test_story_sort_honors_order_wildcard_and_nested_lists() -> None:
    comparator_options = {
        "order": ["Intro", "Components", ["Button"], "*", "Utilities"],
    }
    entries = [
        _story("Utilities/Format"),
        _story("Components/Card"),
        _story("Other"),
        _story("Intro"),
        _story("Components/Button"),
    ]

    ordered = sort_entries(entries, comparator_options, [])

    assert [entry.title for entry in ordered] == [
        "Intro",
        "Components/Button",
        "Components/Card",
        "Other",
        "Utilities/Format",
    ]


def test_story_sort_include_names_orders_within_a_title() -> None:
    compare = story_sort({"method": "alphabetical", "includeNames": True})
    beta = _story("Button", "Beta")
    alpha = _story("Button", "Alpha")

    assert compare(alpha, beta) < 0
    assert compare(beta, alpha) > 0
    assert story_sort({"method": "alphabetical"})(alpha, beta) == 0


def test_sort_entries_accepts_comparator_callable() -> None:
    entries = [_story("A"), _story("C"), _story("B")]

    ordered = sort_entries(entries, lambda a, b: (a.title < b.title) - (a.title > b.title), [])

    assert [entry.title for entry in ordered] == ["C", "B", "A"]


def test_sort_entries_wraps_comparator_failures() -> None:
    def broken(a, b):
        raise KeyError("boom")

    with pytest.raises(ValueError, match="Error sorting stories"):
        sort_entries([_story("A"), _story("B")], broken, [])
