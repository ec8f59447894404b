"""Core data models shared across storyindex components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Literal, Optional, Pattern, Union

from .globs import compile_glob

STORY_TAG = "story"
DOCS_TAG = "docs"
AUTODOCS_TAG = "autodocs"
STORIES_MDX_TAG = "stories-mdx"
DOCS_ONLY_TAG = "stories-mdx-docsOnly"
ATTACHED_MDX_TAG = "attached-mdx"
UNATTACHED_MDX_TAG = "unattached-mdx"
PLAY_FN_TAG = "play-fn"

INDEX_VERSION = 4


@dataclass(frozen=True, eq=False)
class Specifier:
    """A configured directory + files glob; compared by identity so it can key caches."""

    directory: str
    files: str
    title_prefix: str = ""
    matcher: Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "matcher", compile_glob(f"{self.directory}/{self.files}"))

    def matches(self, import_path: str) -> bool:
        return self.matcher.match(import_path) is not None


@dataclass
class IndexInput:
    """Raw story descriptor produced by a per-file indexer."""

    export_name: str
    name: Optional[str] = None
    title: Optional[str] = None
    meta_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    meta_tags: List[str] = field(default_factory=list)
    explicit_id: Optional[str] = None


@dataclass
class StoryEntry:
    """A single story in the published index."""

    type: ClassVar[Literal["story"]] = "story"

    id: str
    title: str
    name: str
    import_path: str
    tags: List[str] = field(default_factory=list)
    meta_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type,
            "id": self.id,
            "title": self.title,
            "name": self.name,
            "importPath": self.import_path,
            "tags": list(self.tags),
        }
        if self.meta_id is not None:
            payload["metaId"] = self.meta_id
        return payload


@dataclass
class DocsEntry:
    """A documentation page, authored in markup or generated for a stories file."""

    type: ClassVar[Literal["docs"]] = "docs"

    id: str
    title: str
    name: str
    import_path: str
    stories_imports: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "id": self.id,
            "title": self.title,
            "name": self.name,
            "importPath": self.import_path,
            "storiesImports": list(self.stories_imports),
            "tags": list(self.tags),
        }


IndexEntry = Union[StoryEntry, DocsEntry]


def is_mdx_entry(entry: DocsEntry) -> bool:
    """Return True when the docs entry was authored in a documentation-markup file."""
    return AUTODOCS_TAG not in entry.tags and STORIES_MDX_TAG not in entry.tags


class CacheState(Enum):
    """Sentinel cache values that carry no entries."""

    UNPROCESSED = "unprocessed"
    EXCLUDED = "excluded"


UNPROCESSED = CacheState.UNPROCESSED
EXCLUDED = CacheState.EXCLUDED


@dataclass
class StoriesCacheEntry:
    """Extraction result for a stories file plus the docs files that import it."""

    entries: List[IndexEntry]
    dependents: List[str] = field(default_factory=list)

    def add_dependent(self, path: str) -> None:
        if path not in self.dependents:
            self.dependents.append(path)

    def remove_dependent(self, path: str) -> None:
        if path in self.dependents:
            self.dependents.remove(path)


@dataclass
class ErrorCacheEntry:
    """Extraction failure for a single file."""

    error: Exception


CacheEntry = Union[CacheState, StoriesCacheEntry, DocsEntry, ErrorCacheEntry]


@dataclass
class DocsAnalysis:
    """What the documentation analyzer reports about a markup file."""

    imports: List[str] = field(default_factory=list)
    title: Optional[str] = None
    of: Optional[str] = None
    name: Optional[str] = None
    is_template: bool = False
    tags: List[str] = field(default_factory=list)


@dataclass
class DocsOptions:
    """Documentation settings: autodocs may be True, False or "tag"."""

    autodocs: Union[bool, str] = "tag"
    default_name: str = "Docs"


@dataclass
class StoryIndex:
    """The published index: entries keyed by id in sorted order."""

    entries: Dict[str, IndexEntry]
    v: int = INDEX_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "v": self.v,
            "entries": {entry_id: entry.to_dict() for entry_id, entry in self.entries.items()},
        }
