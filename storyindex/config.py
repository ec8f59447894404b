"""Configuration loading for storyindex (.storyindex.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import DocsOptions, Specifier
from .specifiers import normalize_specifier

CONFIG_FILENAME = ".storyindex.yml"

_SORT_METHODS = {"configure", "alphabetical"}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class BuildConfig:
    """Build-time switches."""

    disable_auto_docs: bool = False


@dataclass
class IndexerConfig:
    """Indexer enablement; empty means every discovered indexer."""

    enabled: List[str] = field(default_factory=list)


@dataclass
class StoryIndexConfig:
    """Represents the settings defined in .storyindex.yml."""

    config_dir: Path
    working_dir: Path
    specifiers: List[Specifier] = field(default_factory=list)
    docs: DocsOptions = field(default_factory=DocsOptions)
    build: BuildConfig = field(default_factory=BuildConfig)
    story_sort: Optional[Dict[str, Any]] = None
    indexers: IndexerConfig = field(default_factory=IndexerConfig)


def load_config(config_path: Path) -> StoryIndexConfig:
    """Load configuration from disk.

    Stories entries and ``working_dir`` are resolved relative to the directory
    holding the configuration file, which also serves as the default working
    directory.
    """
    config_file = _resolve_config_path(config_path)
    config_dir = config_file.parent.resolve()

    if not config_file.exists():
        return StoryIndexConfig(config_dir=config_dir, working_dir=config_dir)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    working_dir_str = _as_str(data.get("working_dir"))
    working_dir = (config_dir / working_dir_str).resolve() if working_dir_str else config_dir

    specifiers = _parse_stories(data.get("stories"), working_dir=working_dir, config_dir=config_dir)

    docs_data = _as_dict(data.get("docs"))
    docs = DocsOptions()
    if docs_data:
        if "autodocs" in docs_data:
            docs.autodocs = _as_autodocs(docs_data.get("autodocs"))
        default_name = _as_str(docs_data.get("default_name", docs_data.get("defaultName")))
        if default_name:
            docs.default_name = default_name

    build_data = _as_dict(data.get("build"))
    test_data = _as_dict(build_data.get("test"))
    build = BuildConfig(
        disable_auto_docs=bool(
            _as_bool(test_data.get("disable_auto_docs", test_data.get("disableAutoDocs")))
        )
    )

    story_sort = _parse_story_sort(data.get("story_sort"))

    indexer_data = _as_dict(data.get("indexers"))
    indexers = IndexerConfig(enabled=_as_str_list(indexer_data.get("enabled")))

    return StoryIndexConfig(
        config_dir=config_dir,
        working_dir=working_dir,
        specifiers=specifiers,
        docs=docs,
        build=build,
        story_sort=story_sort,
        indexers=indexers,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _parse_stories(value: Any, *, working_dir: Path, config_dir: Path) -> List[Specifier]:
    if value is None:
        return []
    entries: Sequence[Any] = [value] if isinstance(value, (str, dict)) else value
    if not isinstance(entries, list):
        raise ConfigError("'stories' must be a glob, a mapping or a list of them")
    specifiers: List[Specifier] = []
    for entry in entries:
        try:
            specifiers.append(
                normalize_specifier(entry, working_dir=working_dir, config_dir=config_dir)
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid stories entry {entry!r}: {exc}") from exc
    return specifiers


def _parse_story_sort(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigError("'story_sort' must be a mapping")
    method = value.get("method")
    if method is not None and method not in _SORT_METHODS:
        raise ConfigError(
            f"Unknown story_sort method '{method}'; expected one of {', '.join(sorted(_SORT_METHODS))}"
        )
    order = value.get("order")
    if order is not None and not isinstance(order, list):
        raise ConfigError("'story_sort.order' must be a list")
    return dict(value)


def _as_autodocs(value: Any) -> bool | str:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "tag":
            return "tag"
        parsed = _as_bool(lowered)
        if parsed is not None:
            return parsed
    raise ConfigError(f"'docs.autodocs' must be true, false or \"tag\", got {value!r}")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "BuildConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "IndexerConfig",
    "StoryIndexConfig",
    "load_config",
]
