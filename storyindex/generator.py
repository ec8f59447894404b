"""Incremental story index generation.

The generator keeps one cache per stories specifier, mapping each matched
file to its extraction result. Files start out unprocessed; ``get_index``
extracts whatever is missing (stories files first, then docs files, because a
docs file may point at a stories file through ``<Meta of={...}>``), merges the
entries of every cache, resolves id collisions and sorts the result.

A stories file produces its stories and, when autodocs applies, a generated
docs page wrapping the file. A docs (``.mdx``) file produces one docs entry and
records itself as a dependent of every stories file it imports so that
``invalidate`` can reset it when one of those files changes.
"""

from __future__ import annotations

import asyncio
import inspect
import os
import posixpath
import re
import traceback
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from . import mdx
from .csf import auto_name, story_name_from_export, to_id
from .errors import (
    AggregateIndexingError,
    DuplicateConflictError,
    ExtractionError,
    IndexingError,
    MissingIndexerError,
    UnresolvedReferenceError,
)
from .indexers import Indexer
from .logging import get_logger, warn_once
from .models import (
    ATTACHED_MDX_TAG,
    AUTODOCS_TAG,
    DOCS_ONLY_TAG,
    DOCS_TAG,
    EXCLUDED,
    STORIES_MDX_TAG,
    STORY_TAG,
    UNATTACHED_MDX_TAG,
    UNPROCESSED,
    CacheEntry,
    DocsAnalysis,
    DocsEntry,
    DocsOptions,
    ErrorCacheEntry,
    IndexEntry,
    Specifier,
    StoriesCacheEntry,
    StoryEntry,
    StoryIndex,
    is_mdx_entry,
)
from .sorting import SortParameter, sort_entries
from .specifiers import import_path_for, resolve_specifier, user_or_auto_title

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .config import StoryIndexConfig

DocsAnalyzer = Callable[[str], Union[DocsAnalysis, Awaitable[DocsAnalysis]]]
SpecifierCache = Dict[str, CacheEntry]
Updater = Callable[[Specifier, str, CacheEntry], Awaitable[CacheEntry]]

_DOCS_FILE = re.compile(r"(?<!\.stories)\.mdx$", re.IGNORECASE)
_EXTENSION = re.compile(r"\.[^./]+")
_SNAPSHOT_SUFFIX = ".storyshot"
_CHANGE_DOCS_NAME = 'Use `<Meta of={} name="Other Name">` to distinguish them.'


@dataclass
class GeneratorOptions:
    """Inputs the generator needs besides the specifiers."""

    working_dir: Path
    config_dir: Path
    indexers: Sequence[Indexer]
    docs: DocsOptions = field(default_factory=DocsOptions)
    disable_auto_docs: bool = False
    story_sort: SortParameter = None
    docs_analyzer: DocsAnalyzer = mdx.analyze


class StoryIndexGenerator:
    """Builds and incrementally maintains the index for a set of specifiers."""

    def __init__(self, specifiers: Sequence[Specifier], options: GeneratorOptions) -> None:
        self.specifiers = list(specifiers)
        self.options = options
        self.working_dir = Path(options.working_dir).expanduser().resolve()
        self.logger = get_logger("generator")
        self._specifier_to_cache: Dict[Specifier, SpecifierCache] = {}
        self._initialized = False
        self._last_index: Optional[StoryIndex] = None
        self._last_error: Optional[Exception] = None
        self._pending: Optional[asyncio.Future[StoryIndex]] = None
        self._generation = 0
        # Bumped whenever a slot is reset so in-flight extractions of it are discarded.
        self._slot_versions: Dict[str, int] = {}
        self._warned: Set[str] = set()

    @classmethod
    def from_config(
        cls, config: "StoryIndexConfig", *, indexers: Optional[Sequence[Indexer]] = None
    ) -> "StoryIndexGenerator":
        """Create a generator for a loaded ``.storyindex.yml`` configuration."""
        from .indexers import discover_indexers

        if indexers is None:
            enabled = config.indexers.enabled or None
            indexers = discover_indexers(enabled)
        options = GeneratorOptions(
            working_dir=config.working_dir,
            config_dir=config.config_dir,
            indexers=list(indexers),
            docs=config.docs,
            disable_auto_docs=config.build.disable_auto_docs,
            story_sort=config.story_sort,
        )
        return cls(config.specifiers, options)

    # ------------------------------------------------------------------
    # File cache

    async def initialize(self) -> None:
        """Find the files matched by every specifier, then extract them."""
        results = await asyncio.gather(
            *(resolve_specifier(specifier, self.working_dir) for specifier in self.specifiers),
            return_exceptions=True,
        )

        # Assigned after gathering so cache order always follows specifier order.
        for specifier, result in zip(self.specifiers, results):
            pattern = f"{specifier.directory}/{specifier.files}"
            cache: SpecifierCache = {}
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.error("Failed to resolve stories pattern %s: %s", pattern, result)
            else:
                if not result:
                    warn_once(
                        self.logger,
                        self._warned,
                        "No story files found for the specified pattern: %s",
                        pattern,
                    )
                for absolute_path in result:
                    if absolute_path.endswith(_SNAPSHOT_SUFFIX):
                        self.logger.info(
                            "Skipping %s file %s",
                            _SNAPSHOT_SUFFIX,
                            import_path_for(absolute_path, self.working_dir),
                        )
                        continue
                    cache[absolute_path] = UNPROCESSED
            self._specifier_to_cache[specifier] = cache

        self._initialized = True
        await self.ensure_extracted()

    def _cache_for(self, specifier: Specifier) -> SpecifierCache:
        cache = self._specifier_to_cache.get(specifier)
        if cache is None:
            raise ValueError(f"Specifier does not have a matching cache entry: {specifier!r}")
        return cache

    def get_cache_entry(self, specifier: Specifier, import_path: str) -> Optional[CacheEntry]:
        return self._cache_for(specifier).get(self.absolute_path(import_path))

    def absolute_path(self, import_path: str) -> str:
        return posixpath.normpath(
            os.path.join(self.working_dir.as_posix(), import_path.replace("\\", "/"))
        )

    async def update_extracted(self, updater: Updater, overwrite: bool = False) -> None:
        """Run ``updater`` over every unprocessed cache slot (or every slot with ``overwrite``)."""

        async def _update(specifier: Specifier, cache: SpecifierCache, absolute_path: str) -> None:
            existing = cache[absolute_path]
            if existing is not UNPROCESSED and not overwrite:
                return
            version = self._slot_versions.get(absolute_path, 0)
            try:
                result: CacheEntry = await updater(specifier, absolute_path, existing)
            except Exception as exc:
                result = ErrorCacheEntry(self._as_indexing_error(exc, absolute_path))
                self.logger.debug("Failed to index %s: %s", absolute_path, exc)
            # The file may have been removed or invalidated while it was being extracted.
            if absolute_path not in cache or self._slot_versions.get(absolute_path, 0) != version:
                self.logger.debug("Discarding stale extraction of %s", absolute_path)
                return
            cache[absolute_path] = result

        tasks = [
            _update(specifier, cache, absolute_path)
            for specifier in self.specifiers
            for cache in (self._cache_for(specifier),)
            for absolute_path in list(cache)
        ]
        await asyncio.gather(*tasks)

    def is_docs_file(self, absolute_path: str) -> bool:
        return _DOCS_FILE.search(absolute_path) is not None

    async def ensure_extracted(self) -> List[Union[IndexEntry, ErrorCacheEntry]]:
        """Extract missing entries and return every entry and error across all caches."""

        async def _stories_pass(
            specifier: Specifier, absolute_path: str, existing: CacheEntry
        ) -> CacheEntry:
            if self.is_docs_file(absolute_path):
                return UNPROCESSED
            return await self.extract_stories(specifier, absolute_path)

        async def _docs_pass(
            specifier: Specifier, absolute_path: str, existing: CacheEntry
        ) -> CacheEntry:
            return await self.extract_docs(specifier, absolute_path)

        await self.update_extracted(_stories_pass)
        await self.update_extracted(_docs_pass)

        collected: List[Union[IndexEntry, ErrorCacheEntry]] = []
        for specifier in self.specifiers:
            for entry in self._cache_for(specifier).values():
                if isinstance(entry, StoriesCacheEntry):
                    collected.extend(entry.entries)
                elif isinstance(entry, (DocsEntry, ErrorCacheEntry)):
                    collected.append(entry)
        return collected

    # ------------------------------------------------------------------
    # Extraction

    def find_dependencies(self, absolute_imports: Sequence[str]) -> List[Tuple[str, StoriesCacheEntry]]:
        """Return every extracted stories file, in any cache, matching one of the imports."""
        found: List[Tuple[str, StoriesCacheEntry]] = []
        for cache in self._specifier_to_cache.values():
            for file_name, entry in cache.items():
                # Unprocessed, excluded or docs slots are never dependencies.
                if not isinstance(entry, StoriesCacheEntry):
                    continue
                if any(_matches_import(file_name, target) for target in absolute_imports):
                    found.append((file_name, entry))
        return found

    async def extract_stories(self, specifier: Specifier, absolute_path: str) -> StoriesCacheEntry:
        import_path = import_path_for(absolute_path, self.working_dir)

        def make_title(user_title: Optional[str] = None) -> str:
            title = user_or_auto_title(import_path, specifier, user_title)
            if not title:
                raise ExtractionError(
                    "Could not derive a title: the file does not match its stories specifier",
                    [import_path],
                )
            return title

        indexer = next((ind for ind in self.options.indexers if ind.test(absolute_path)), None)
        if indexer is None:
            raise MissingIndexerError(f"No matching indexer found for {absolute_path}", [import_path])

        inputs = await indexer.create_index(absolute_path, make_title=make_title)

        entries: List[IndexEntry] = []
        for item in inputs:
            export_label = story_name_from_export(item.export_name)
            title = item.title or make_title()
            entries.append(
                StoryEntry(
                    id=item.explicit_id or to_id(item.meta_id or title, export_label),
                    title=title,
                    name=item.name or export_label,
                    import_path=import_path,
                    tags=[*item.tags, STORY_TAG],
                    meta_id=item.meta_id,
                )
            )

        autodocs = self.options.docs.autodocs
        has_autodocs_tag = any(AUTODOCS_TAG in entry.tags for entry in entries)
        is_stories_mdx = any(STORIES_MDX_TAG in entry.tags for entry in entries)
        create_docs_entry = (
            autodocs is True or (autodocs == "tag" and has_autodocs_tag) or is_stories_mdx
        )

        if create_docs_entry and entries and not self.options.disable_auto_docs:
            name = self.options.docs.default_name
            first_input = inputs[0]
            title = entries[0].title
            tags = [*first_input.meta_tags, DOCS_TAG]
            if AUTODOCS_TAG not in tags and not is_stories_mdx:
                tags.append(AUTODOCS_TAG)
            entries.insert(
                0,
                DocsEntry(
                    id=to_id(first_input.meta_id or title, name),
                    title=title,
                    name=name,
                    import_path=import_path,
                    stories_imports=[],
                    tags=tags,
                ),
            )

        entries = [
            entry
            for entry in entries
            if not (isinstance(entry, StoryEntry) and DOCS_ONLY_TAG in entry.tags)
        ]
        self.logger.debug("Indexed %d entries from %s", len(entries), import_path)
        return StoriesCacheEntry(entries=entries)

    async def extract_docs(self, specifier: Specifier, absolute_path: str) -> CacheEntry:
        import_path = import_path_for(absolute_path, self.working_dir)
        content = await asyncio.to_thread(Path(absolute_path).read_text, encoding="utf-8")

        result = self.options.docs_analyzer(content)
        if inspect.isawaitable(result):
            result = await result

        # Templates are reused by other pages and never indexed themselves.
        if result.is_template:
            return EXCLUDED

        absolute_imports = [self._make_absolute(path, import_path) for path in result.imports]
        dependencies = self.find_dependencies(absolute_imports)
        sorted_dependencies = list(dependencies)

        csf_entry: Optional[StoryEntry] = None
        if result.of:
            absolute_of = self._make_absolute(result.of, import_path)
            candidates: List[Tuple[str, StoriesCacheEntry, StoryEntry]] = []
            for dep_path, dep in dependencies:
                first = next((e for e in dep.entries if isinstance(e, StoryEntry)), None)
                if first is None:
                    continue
                if _matches_import(self.absolute_path(first.import_path), absolute_of):
                    if all(path != dep_path for path, _, _ in candidates):
                        candidates.append((dep_path, dep, first))

            if not candidates:
                raise UnresolvedReferenceError(
                    f'Could not find or load stories file at path "{result.of}" referenced by '
                    f'`of={{}}` in docs file "{import_path}". Check that the file exists, that '
                    "it is a stories file matched by a configured specifier, and that it "
                    "indexes without errors.",
                    [import_path],
                )
            if len(candidates) > 1:
                matched = ", ".join(import_path_for(path, self.working_dir) for path, _, _ in candidates)
                raise UnresolvedReferenceError(
                    f'The reference "{result.of}" in `of={{}}` is ambiguous: it matches {matched}.',
                    [import_path],
                )

            meta_path, meta_dependency, csf_entry = candidates[0]
            sorted_dependencies = [(meta_path, meta_dependency)] + [
                (path, dep) for path, dep in dependencies if path != meta_path
            ]

        title = (
            csf_entry.title
            if csf_entry is not None
            else user_or_auto_title(import_path, specifier, result.title)
        )
        if not title:
            raise ExtractionError(
                "Could not derive a title: the file does not match its stories specifier",
                [import_path],
            )

        default_name = self.options.docs.default_name
        if result.name:
            name = result.name
        elif csf_entry is not None:
            name = auto_name(import_path, csf_entry.import_path, default_name)
        else:
            name = default_name
        meta_id = csf_entry.meta_id if csf_entry is not None else None
        docs_entry = DocsEntry(
            id=to_id(meta_id or title, name),
            title=title,
            name=name,
            import_path=import_path,
            stories_imports=list(
                dict.fromkeys(
                    import_path_for(path, self.working_dir) for path, _ in sorted_dependencies
                )
            ),
            tags=[
                *result.tags,
                ATTACHED_MDX_TAG if csf_entry is not None else UNATTACHED_MDX_TAG,
                DOCS_TAG,
            ],
        )

        # Record the edge so invalidating a stories file also resets this docs file.
        for _, dependency in dependencies:
            dependency.add_dependent(absolute_path)

        return docs_entry

    def _make_absolute(self, other_import: str, docs_import_path: str) -> str:
        if not other_import.startswith("."):
            return other_import
        return posixpath.normpath(
            posixpath.join(
                self.working_dir.as_posix(), posixpath.dirname(docs_import_path), other_import
            )
        )

    def _as_indexing_error(self, exc: Exception, absolute_path: str) -> IndexingError:
        if isinstance(exc, IndexingError):
            return exc
        return ExtractionError(
            str(exc),
            [import_path_for(absolute_path, self.working_dir)],
            stack="".join(traceback.format_exception(exc)),
        )

    # ------------------------------------------------------------------
    # Duplicates and ordering

    def choose_duplicate(self, first_entry: IndexEntry, second_entry: IndexEntry) -> IndexEntry:
        """Pick (or merge) the entry to keep when two entries share an id."""
        # The same file matched by more than one specifier.
        if first_entry.import_path == second_entry.import_path:
            return first_entry

        first_is_better = True
        if isinstance(second_entry, StoryEntry):
            first_is_better = False
        elif (
            isinstance(first_entry, DocsEntry)
            and is_mdx_entry(second_entry)
            and not is_mdx_entry(first_entry)
        ):
            first_is_better = False
        better = first_entry if first_is_better else second_entry
        worse = second_entry if first_is_better else first_entry
        paths = [first_entry.import_path, second_entry.import_path]

        if isinstance(worse, StoryEntry):
            raise DuplicateConflictError(f"Duplicate stories with id: {first_entry.id}", paths)

        if isinstance(better, StoryEntry):
            if is_mdx_entry(worse):
                raise DuplicateConflictError(
                    f"You have a story for {better.title} with the same name as your component "
                    f"docs page ({worse.name}), so the docs page is being dropped. {_CHANGE_DOCS_NAME}",
                    paths,
                )
            self.logger.debug(
                "Story %s replaces the generated docs page from %s", better.id, worse.import_path
            )
            return better

        if is_mdx_entry(better):
            if is_mdx_entry(worse):
                raise DuplicateConflictError(
                    f"You have two component docs pages with the same name "
                    f"{better.title}:{better.name}. {_CHANGE_DOCS_NAME}",
                    paths,
                )
            if AUTODOCS_TAG in worse.tags and self.options.docs.autodocs is not True:
                self.logger.warning(
                    "You created a component docs page for '%s' (%s), but also tagged %s with '%s'."
                    " The generated page is replaced.",
                    worse.title,
                    better.import_path,
                    worse.import_path,
                    AUTODOCS_TAG,
                )
            return better

        # Two generated pages for stories files sharing a title: load both files' stories.
        merged_imports = [*better.stories_imports, worse.import_path, *worse.stories_imports]
        return replace(better, stories_imports=list(dict.fromkeys(merged_imports)))

    def story_file_names(self) -> List[str]:
        """Import paths of all cached files in discovery order."""
        return [
            import_path_for(absolute_path, self.working_dir)
            for cache in self._specifier_to_cache.values()
            for absolute_path in cache
        ]

    # ------------------------------------------------------------------
    # Published index

    async def get_index(self) -> StoryIndex:
        """Return the current index, computing it if it was invalidated."""
        if self._last_index is not None:
            return self._last_index
        if self._last_error is not None:
            raise self._last_error

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._compute_index())
        pending = self._pending
        try:
            return await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None

    async def _compute_index(self) -> StoryIndex:
        generation = self._generation
        try:
            if not self._initialized:
                await self.initialize()
            entries = await self.ensure_extracted()
            index = self._assemble(entries)
        except Exception as exc:
            if generation == self._generation:
                self._last_index = None
                self._last_error = exc
            self.logger.warning("%s", exc)
            raise

        # An invalidation during extraction means this result is already stale.
        if generation == self._generation:
            self._last_index = index
            self._last_error = None
        return index

    def _assemble(self, collected: Sequence[Union[IndexEntry, ErrorCacheEntry]]) -> StoryIndex:
        errors: List[IndexingError] = []
        index_entries: Dict[str, IndexEntry] = {}
        for entry in collected:
            if isinstance(entry, ErrorCacheEntry):
                errors.append(entry.error)
                continue
            existing = index_entries.get(entry.id)
            if existing is None:
                index_entries[entry.id] = entry
                continue
            try:
                index_entries[entry.id] = self.choose_duplicate(existing, entry)
            except DuplicateConflictError as exc:
                errors.append(exc)

        if errors:
            raise AggregateIndexingError(errors)

        ordered = sort_entries(
            list(index_entries.values()), self.options.story_sort, self.story_file_names()
        )
        return StoryIndex(entries={entry.id: entry for entry in ordered})

    # ------------------------------------------------------------------
    # Invalidation

    def invalidate(self, specifier: Specifier, import_path: str, removed: bool) -> None:
        """Reset (or drop, when ``removed``) a file and every docs file that depends on it."""
        absolute_path = self.absolute_path(import_path)
        cache = self._cache_for(specifier)
        cache_entry = cache.get(absolute_path)

        if isinstance(cache_entry, StoriesCacheEntry):
            # A dependent may live in any specifier's cache.
            dependents = list(cache_entry.dependents)
            for other_cache in self._specifier_to_cache.values():
                for dependent in dependents:
                    if dependent not in other_cache:
                        continue
                    dependent_entry = other_cache[dependent]
                    if isinstance(dependent_entry, DocsEntry):
                        self._detach_docs(dependent, dependent_entry)
                    self._reset_slot(other_cache, dependent)

        if isinstance(cache_entry, DocsEntry):
            self._detach_docs(absolute_path, cache_entry)

        # Adding, changing or removing a stories file can settle an `of={}` reference
        # that failed before, and those docs files have no edges to follow.
        if not self.is_docs_file(absolute_path):
            self._reset_unresolved_docs()

        if removed:
            cache.pop(absolute_path, None)
            self._bump_slot(absolute_path)
        elif not absolute_path.endswith(_SNAPSHOT_SUFFIX):
            self._reset_slot(cache, absolute_path)

        self._generation += 1
        self._last_index = None
        self._last_error = None
        # The next get_index() must not join a computation that predates this change.
        self._pending = None

    def _bump_slot(self, absolute_path: str) -> None:
        self._slot_versions[absolute_path] = self._slot_versions.get(absolute_path, 0) + 1

    def _reset_slot(self, cache: SpecifierCache, absolute_path: str) -> None:
        cache[absolute_path] = UNPROCESSED
        self._bump_slot(absolute_path)

    def _reset_unresolved_docs(self) -> None:
        for cache in self._specifier_to_cache.values():
            for file_name, entry in list(cache.items()):
                if not self.is_docs_file(file_name):
                    continue
                # Unprocessed docs slots may be mid-extraction against the old file set.
                if entry is UNPROCESSED or (
                    isinstance(entry, ErrorCacheEntry)
                    and isinstance(entry.error, UnresolvedReferenceError)
                ):
                    self._reset_slot(cache, file_name)

    def _detach_docs(self, absolute_path: str, docs_entry: DocsEntry) -> None:
        absolute_imports = [self.absolute_path(path) for path in docs_entry.stories_imports]
        for _, dependency in self.find_dependencies(absolute_imports):
            dependency.remove_dependent(absolute_path)


def _matches_import(file_name: str, absolute_import: str) -> bool:
    """True when ``file_name`` is the import itself or the import plus one extension."""
    if file_name == absolute_import:
        return True
    if not file_name.startswith(absolute_import):
        return False
    return _EXTENSION.fullmatch(file_name[len(absolute_import) :]) is not None


__all__ = ["GeneratorOptions", "StoryIndexGenerator"]
