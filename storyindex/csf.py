"""Identifier and naming helpers for index entries."""

from __future__ import annotations

import posixpath
import re

_SANITIZE_PATTERN = re.compile(r"[ ’–—―′¿'`~!@#$%^&*()_|+\-=?;:\",.<>{}\[\]\\/]")
_DASH_RUN = re.compile(r"-+")
_WORD_PATTERN = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")


def sanitize(value: str) -> str:
    """Lower-case a title or name and collapse punctuation into single dashes."""
    lowered = _SANITIZE_PATTERN.sub("-", value.lower())
    return _DASH_RUN.sub("-", lowered).strip("-")


def _sanitize_safe(value: str, part: str) -> str:
    sanitized = sanitize(value)
    if not sanitized:
        raise ValueError(f"Invalid {part} '{value}', must include alphanumeric characters")
    return sanitized


def to_id(kind: str, name: str | None = None) -> str:
    """Build an entry id such as ``button--primary`` from a title (or meta id) and a name."""
    kind_part = _sanitize_safe(kind, "kind")
    if not name:
        return kind_part
    return f"{kind_part}--{_sanitize_safe(name, 'name')}"


def story_name_from_export(export_name: str) -> str:
    """Start-case an export name: ``primaryButton`` becomes ``Primary Button``."""
    words = _WORD_PATTERN.findall(export_name)
    return " ".join(word[0].upper() + word[1:] for word in words)


def auto_name(docs_import_path: str, stories_import_path: str, default_name: str) -> str:
    """Name a docs page attached to a stories file.

    When both files share a stem (``Button.mdx`` next to ``Button.stories.json``)
    the page gets the default docs name, otherwise it is named after the docs file.
    """
    docs_stem = posixpath.basename(docs_import_path).split(".")[0]
    stories_stem = posixpath.basename(stories_import_path).split(".")[0]
    if docs_stem == stories_stem:
        return default_name
    return docs_stem


__all__ = ["auto_name", "sanitize", "story_name_from_export", "to_id"]
