"""Error types raised while building the story index."""

from __future__ import annotations

from typing import Optional, Sequence


class IndexingError(RuntimeError):
    """A failure attributable to one or more source files."""

    def __init__(
        self, message: str, import_paths: Sequence[str], stack: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.import_paths = list(import_paths)
        self.stack = stack

    def paths_string(self) -> str:
        if not self.import_paths:
            return "(unknown file)"
        if len(self.import_paths) == 1:
            return self.import_paths[0]
        return f"{', '.join(self.import_paths[:-1])} and {self.import_paths[-1]}"

    def __str__(self) -> str:
        return f"{self.paths_string()}: {self.message}"


class ExtractionError(IndexingError):
    """A single file could not be read or indexed."""


class MissingIndexerError(IndexingError):
    """No registered indexer accepts a stories file."""


class UnresolvedReferenceError(IndexingError):
    """A docs file references a stories file that cannot be found unambiguously."""


class DuplicateConflictError(IndexingError):
    """Two entries share an id and cannot be merged."""


class AggregateIndexingError(RuntimeError):
    """Raised by the generator when any file or conflict error exists in a batch."""

    def __init__(self, errors: Sequence[IndexingError]) -> None:
        self.errors = list(errors)
        super().__init__(self._format())

    def _format(self) -> str:
        if len(self.errors) == 1:
            return f"Unable to index {self.errors[0]}"
        lines = "\n".join(f"  - {error}" for error in self.errors)
        return f"Unable to index files:\n{lines}"


__all__ = [
    "AggregateIndexingError",
    "DuplicateConflictError",
    "ExtractionError",
    "IndexingError",
    "MissingIndexerError",
    "UnresolvedReferenceError",
]
