"""Helper utilities for constructing temporary story projects in tests."""

from __future__ import annotations

import asyncio
import json
import textwrap
from pathlib import Path
from typing import Any, Coroutine, Mapping, Sequence, TypeVar

from storyindex.generator import GeneratorOptions, StoryIndexGenerator
from storyindex.indexers import StoriesFileIndexer
from storyindex.models import Specifier
from storyindex.specifiers import normalize_specifier

T = TypeVar("T")


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


def stories_json(title: str | None, *names: str, **extra: Any) -> str:
    """Serialise a minimal stories file with one story per name."""
    payload: dict[str, Any] = {"stories": [{"name": name} for name in names]}
    if title is not None:
        payload["title"] = title
    payload.update(extra)
    return json.dumps(payload)


class ProjectBuilder:
    """Utility for writing files into a throwaway project and indexing it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = (tmp_path / "project").resolve()
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def remove(self, relative: str) -> None:
        (self.root / relative).unlink()

    def specifier(self, entry: str | Mapping[str, Any]) -> Specifier:
        return normalize_specifier(entry, working_dir=self.root, config_dir=self.root)

    def generator(self, specifiers: Sequence[Specifier], **options: Any) -> StoryIndexGenerator:
        indexers = options.pop("indexers", [StoriesFileIndexer()])
        return StoryIndexGenerator(
            specifiers,
            GeneratorOptions(
                working_dir=self.root,
                config_dir=self.root,
                indexers=indexers,
                **options,
            ),
        )

    def path(self) -> Path:
        """Return the project root path."""
        return self.root


__all__ = ["ProjectBuilder", "run", "stories_json"]
