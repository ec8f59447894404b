"""Stories specifier normalization, file discovery and title derivation."""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Sequence

from .globs import is_glob
from .models import Specifier

DEFAULT_FILES_PATTERN = "**/*.@(mdx|stories.@(js|jsx|mjs|ts|tsx|json|yaml|yml))"
DEFAULT_TITLE_PREFIX = ""

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
}

_INDEX_SEGMENT = re.compile(r"^index$", re.IGNORECASE)
_SLASH_RUN = re.compile(r"/+")


def slash(path: str) -> str:
    return path.replace("\\", "/")


def normalize_story_path(path: str) -> str:
    """Prefix a relative path with ``./`` unless it is absolute or already dotted."""
    path = slash(path)
    if path == "." or os.path.isabs(path) or path.startswith("./") or path.startswith("../"):
        return path
    return f"./{path}"


def import_path_for(absolute_path: str, working_dir: Path) -> str:
    return normalize_story_path(os.path.relpath(absolute_path, working_dir))


def _directory_from_working_dir(directory: str, *, working_dir: Path, config_dir: Path) -> str:
    from_config = (config_dir / directory).resolve()
    return normalize_story_path(os.path.relpath(from_config, working_dir.resolve()))


def normalize_specifier(
    entry: str | Mapping[str, Any],
    *,
    working_dir: Path,
    config_dir: Path,
    default_files_pattern: str = DEFAULT_FILES_PATTERN,
) -> Specifier:
    """Turn a configured stories entry (glob string or mapping) into a Specifier."""
    if isinstance(entry, str):
        parts = slash(entry).split("/")
        glob_index = next((i for i, part in enumerate(parts) if is_glob(part)), None)
        if glob_index is None:
            directory, files = entry, default_files_pattern
        else:
            directory = "/".join(parts[:glob_index]) or "."
            files = "/".join(parts[glob_index:])
        title_prefix = DEFAULT_TITLE_PREFIX
    elif isinstance(entry, Mapping):
        raw_directory = entry.get("directory")
        if not isinstance(raw_directory, str) or not raw_directory:
            raise ValueError(f"Stories entry is missing a directory: {dict(entry)!r}")
        directory = raw_directory
        files = str(entry.get("files") or default_files_pattern)
        title_prefix = str(entry.get("title_prefix", entry.get("titlePrefix")) or "")
    else:
        raise TypeError(f"Unsupported stories entry: {entry!r}")

    return Specifier(
        directory=_directory_from_working_dir(
            directory, working_dir=working_dir, config_dir=config_dir
        ),
        files=slash(files),
        title_prefix=title_prefix,
    )


def _path_join(parts: Sequence[str]) -> str:
    return _SLASH_RUN.sub("/", "/".join(parts))


def _strip_extension(parts: List[str]) -> List[str]:
    parts = list(parts)
    last = parts[-1]
    dot_index = last.find(".")
    parts[-1] = last[:dot_index] if dot_index > 0 else last
    if parts and parts[0] == "":
        parts = parts[1:]
    return parts


def _remove_redundant_filename(parts: List[str]) -> List[str]:
    result: List[str] = []
    previous: str | None = None
    for index, value in enumerate(parts):
        if index == len(parts) - 1 and (value == previous or _INDEX_SEGMENT.match(value)):
            continue
        previous = value
        result.append(value)
    return result


def user_or_auto_title(
    import_path: str, specifier: Specifier, user_title: str | None = None
) -> str | None:
    """Return the title for a file, or None when the specifier does not match it."""
    normalized = slash(import_path)
    if not specifier.matches(normalized):
        return None
    if not user_title:
        suffix = normalized.replace(specifier.directory, "", 1)
        parts = _path_join([specifier.title_prefix, suffix]).split("/")
        parts = _remove_redundant_filename(_strip_extension(parts))
        return "/".join(parts)
    if not specifier.title_prefix:
        return user_title
    return _path_join([specifier.title_prefix, user_title])


def _iter_files(base: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
        current_dir = Path(dirpath)
        for filename in filenames:
            yield current_dir / filename


def glob_specifier(specifier: Specifier, working_dir: Path) -> List[str]:
    """Return absolute POSIX paths matched by the specifier, sorted."""
    base = (working_dir / specifier.directory).resolve()
    if not base.is_dir():
        return []
    matches: List[str] = []
    for path in _iter_files(base):
        if specifier.matches(import_path_for(str(path), working_dir)):
            matches.append(path.as_posix())
    return sorted(matches)


async def resolve_specifier(specifier: Specifier, working_dir: Path) -> List[str]:
    return await asyncio.to_thread(glob_specifier, specifier, working_dir)


__all__ = [
    "DEFAULT_FILES_PATTERN",
    "glob_specifier",
    "import_path_for",
    "normalize_specifier",
    "normalize_story_path",
    "resolve_specifier",
    "user_or_auto_title",
]
