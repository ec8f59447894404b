"""Glob pattern translation for stories specifiers."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Pattern, Tuple

_EXTGLOB_SUFFIX = {"@": "", "?": "?", "+": "+", "*": "*"}


def glob_to_regex(pattern: str) -> str:
    """Translate a glob (with `**`, braces and extglob groups) into a regex body."""
    return _translate(pattern.replace("\\", "/"))


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> Pattern[str]:
    return re.compile(f"^{glob_to_regex(pattern)}$")


def _translate(pattern: str) -> str:
    out: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        nxt = pattern[index + 1] if index + 1 < length else ""
        if char in _EXTGLOB_SUFFIX and nxt == "(":
            body, index = _group(pattern, index + 1, "(", ")")
            alternatives = "|".join(_translate(alt) for alt in _split_top_level(body, "|"))
            out.append(f"(?:{alternatives}){_EXTGLOB_SUFFIX[char]}")
            continue
        if char == "*":
            if nxt == "*":
                if pattern[index + 2 : index + 3] == "/":
                    out.append("(?:[^/]*/)*")
                    index += 3
                else:
                    out.append(".*")
                    index += 2
                continue
            out.append("[^/]*")
            index += 1
            continue
        if char == "?":
            out.append("[^/]")
            index += 1
            continue
        if char == "{":
            closing = _find_closing(pattern, index, "{", "}")
            if closing == -1:
                out.append(re.escape(char))
                index += 1
                continue
            body = pattern[index + 1 : closing]
            alternatives = "|".join(_translate(alt) for alt in _split_top_level(body, ","))
            out.append(f"(?:{alternatives})")
            index = closing + 1
            continue
        if char == "[":
            closing = pattern.find("]", index + 1)
            if closing == -1:
                out.append(re.escape(char))
                index += 1
                continue
            body = pattern[index + 1 : closing]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            index = closing + 1
            continue
        out.append(re.escape(char))
        index += 1
    return "".join(out)


def _group(pattern: str, start: int, opener: str, closer: str) -> Tuple[str, int]:
    closing = _find_closing(pattern, start, opener, closer)
    if closing == -1:
        raise ValueError(f"Unbalanced '{opener}' in glob pattern: {pattern}")
    return pattern[start + 1 : closing], closing + 1


def _find_closing(pattern: str, start: int, opener: str, closer: str) -> int:
    depth = 0
    for position in range(start, len(pattern)):
        char = pattern[position]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return position
    return -1


def _split_top_level(body: str, separator: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in body:
        if char in "({":
            depth += 1
        elif char in ")}":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def is_glob(pattern: str) -> bool:
    return any(char in pattern for char in "*?[{") or "@(" in pattern or "+(" in pattern


__all__ = ["compile_glob", "glob_to_regex", "is_glob"]
