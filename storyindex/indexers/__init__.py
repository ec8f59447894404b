"""Per-file indexer implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import FunctionIndexer, Indexer, MakeTitle
from .stories_file import StoriesFileIndexer

_ENTRY_POINT_GROUP = "storyindex.indexers"

_BUILTIN_FACTORIES: dict[str, Callable[[], Indexer]] = {
    "stories-file": StoriesFileIndexer,
}


def discover_indexers(enabled: Sequence[str] | None = None) -> List[Indexer]:
    """Return instantiated indexers in priority order, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    indexers: List[Indexer] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Indexer]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory()
        if not isinstance(instance, Indexer):
            raise TypeError(f"Indexer factory for '{name}' did not return an Indexer instance")
        indexers.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    # Plugins come first so they can take over file types the built-ins also claim.
    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load indexer entry point '{name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Indexer:
            return _coerce_indexer(obj)

        _add(name, _factory)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown indexers requested: {missing}")

    return indexers


def _coerce_indexer(obj: object) -> Indexer:
    if isinstance(obj, Indexer):
        return obj
    if isinstance(obj, type) and issubclass(obj, Indexer):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Indexer):
            return instance
    raise TypeError("Indexer entry point must be an Indexer subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "FunctionIndexer",
    "Indexer",
    "MakeTitle",
    "StoriesFileIndexer",
    "discover_indexers",
]
