"""Deterministic ordering of index entries."""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .models import IndexEntry

Comparator = Callable[[IndexEntry, IndexEntry], int]
SortParameter = Union[Mapping[str, Any], Comparator, None]

_TITLE_SEPARATOR = re.compile(r"\s*/\s*")
_DIGITS = re.compile(r"(\d+)")


def _natural_key(value: str) -> List[Any]:
    return [
        (0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk.casefold())
        for chunk in _DIGITS.split(value)
        if chunk
    ]


def _compare_names(left: str, right: str) -> int:
    left_key, right_key = _natural_key(left), _natural_key(right)
    if left_key == right_key:
        return 0
    return -1 if left_key < right_key else 1


def story_sort(options: Optional[Mapping[str, Any]] = None) -> Comparator:
    """Build a comparator from a ``{method, order, includeNames}`` sort parameter.

    ``method`` is ``configure`` (keep discovery order) or ``alphabetical``.
    ``order`` lists title segments to put first; a ``"*"`` entry stands for
    everything not listed and a list following a segment orders its children.
    """
    options = dict(options or {})
    method = options.get("method") or "configure"
    include_names = bool(options.get("includeNames", options.get("include_names", False)))
    root_order: Sequence[Any] = options.get("order") or []

    def compare(a: IndexEntry, b: IndexEntry) -> int:
        if a.title == b.title and not include_names:
            return 0

        order: Sequence[Any] = root_order
        path_a = _TITLE_SEPARATOR.split(a.title.strip())
        path_b = _TITLE_SEPARATOR.split(b.title.strip())
        if include_names:
            path_a.append(a.name)
            path_b.append(b.name)

        depth = 0
        while depth < len(path_a) or depth < len(path_b):
            if depth >= len(path_a):
                return -1
            if depth >= len(path_b):
                return 1
            name_a, name_b = path_a[depth], path_b[depth]
            if name_a != name_b:
                index_a = _position(order, name_a)
                index_b = _position(order, name_b)
                wildcard = _position(order, "*")
                if index_a != -1 or index_b != -1:
                    fallback = wildcard if wildcard != -1 else len(order)
                    if index_a == -1:
                        index_a = fallback
                    if index_b == -1:
                        index_b = fallback
                    return index_a - index_b
                if method == "configure":
                    return 0
                return _compare_names(name_a, name_b)

            index = _position(order, name_a)
            if index == -1:
                index = _position(order, "*")
            if index != -1 and index + 1 < len(order) and isinstance(order[index + 1], list):
                order = order[index + 1]
            else:
                order = []
            depth += 1
        return 0

    return compare


def _position(order: Sequence[Any], name: str) -> int:
    for index, item in enumerate(order):
        if item == name:
            return index
    return -1


def sort_entries(
    entries: Sequence[IndexEntry],
    sort_parameter: SortParameter,
    discovery_order: Sequence[str],
) -> List[IndexEntry]:
    """Order entries by discovery position, then stably by the sort parameter if any."""
    positions: Dict[str, int] = {}
    for position, import_path in enumerate(discovery_order):
        positions.setdefault(import_path, position)
    unknown = len(positions)
    ordered = sorted(entries, key=lambda entry: positions.get(entry.import_path, unknown))

    if not sort_parameter:
        return ordered

    comparator = sort_parameter if callable(sort_parameter) else story_sort(sort_parameter)
    try:
        return sorted(ordered, key=cmp_to_key(comparator))
    except Exception as exc:
        raise ValueError(
            f"Error sorting stories with sort parameter {sort_parameter!r}: {exc}"
        ) from exc


__all__ = ["Comparator", "SortParameter", "sort_entries", "story_sort"]
