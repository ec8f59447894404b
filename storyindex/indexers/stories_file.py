"""Indexer for declarative stories files written in JSON or YAML."""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..models import DOCS_ONLY_TAG, PLAY_FN_TAG, IndexInput
from .base import Indexer, MakeTitle

_STORIES_FILE = re.compile(r"\.stories\.(json|ya?ml)$", re.IGNORECASE)


class StoriesFileIndexer(Indexer):
    """Reads ``*.stories.json`` / ``*.stories.yaml`` files.

    The file holds a mapping with an optional ``title``, ``id`` and ``tags`` for
    the whole file and a ``stories`` list; each story needs a ``name`` and may
    carry ``id``, ``tags``, ``play`` and ``parameters`` (``docsOnly`` marks a
    legacy docs-only story).
    """

    name = "stories-file"

    def test(self, path: str) -> bool:
        return _STORIES_FILE.search(path) is not None

    async def create_index(self, path: str, *, make_title: MakeTitle) -> List[IndexInput]:
        text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        data = _parse(path, text)

        title = make_title(_as_optional_str(data.get("title")))
        meta_id = _as_optional_str(data.get("id"))
        meta_tags = _as_str_list(data.get("tags"))

        stories = data.get("stories")
        if not isinstance(stories, list):
            raise ValueError(f"{Path(path).name} must define a 'stories' list")

        inputs: List[IndexInput] = []
        for position, story in enumerate(stories):
            if not isinstance(story, dict):
                raise ValueError(f"Story #{position} in {Path(path).name} must be a mapping")
            name = _as_optional_str(story.get("name"))
            if not name:
                raise ValueError(f"Story #{position} in {Path(path).name} has no name")
            tags = meta_tags + _as_str_list(story.get("tags"))
            parameters = story.get("parameters")
            if isinstance(parameters, dict) and parameters.get("docsOnly"):
                tags.append(DOCS_ONLY_TAG)
            if story.get("play"):
                tags.append(PLAY_FN_TAG)
            inputs.append(
                IndexInput(
                    export_name=_as_optional_str(story.get("export")) or name,
                    name=name,
                    title=title,
                    meta_id=meta_id,
                    tags=list(dict.fromkeys(tags)),
                    meta_tags=meta_tags,
                    explicit_id=_as_optional_str(story.get("id")),
                )
            )
        return inputs


def _parse(path: str, text: str) -> Dict[str, Any]:
    if path.lower().endswith(".json"):
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{Path(path).name} must contain a mapping at the root")
    return data


def _as_optional_str(value: Any) -> str | None:
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
