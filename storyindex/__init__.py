"""Incremental index of stories and docs entries for component workshops."""

from .config import ConfigError, StoryIndexConfig, load_config
from .errors import (
    AggregateIndexingError,
    DuplicateConflictError,
    ExtractionError,
    IndexingError,
    MissingIndexerError,
    UnresolvedReferenceError,
)
from .generator import GeneratorOptions, StoryIndexGenerator
from .indexers import FunctionIndexer, Indexer, StoriesFileIndexer, discover_indexers
from .models import (
    DocsAnalysis,
    DocsEntry,
    DocsOptions,
    IndexInput,
    Specifier,
    StoryEntry,
    StoryIndex,
)
from .specifiers import normalize_specifier

__all__ = [
    "AggregateIndexingError",
    "ConfigError",
    "DocsAnalysis",
    "DocsEntry",
    "DocsOptions",
    "DuplicateConflictError",
    "ExtractionError",
    "FunctionIndexer",
    "GeneratorOptions",
    "IndexInput",
    "Indexer",
    "IndexingError",
    "MissingIndexerError",
    "Specifier",
    "StoriesFileIndexer",
    "StoryEntry",
    "StoryIndex",
    "StoryIndexConfig",
    "StoryIndexGenerator",
    "UnresolvedReferenceError",
    "discover_indexers",
    "load_config",
    "normalize_specifier",
]
