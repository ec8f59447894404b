"""Lightweight analyzer for MDX documentation files."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from .models import DocsAnalysis

_IMPORT_PATTERN = re.compile(
    r"^[ \t]*import\s+(?:(?P<clause>[^'\";]*?)\s+from\s+)?['\"](?P<source>[^'\"]+)['\"]\s*;?",
    re.MULTILINE,
)
_META_PATTERN = re.compile(r"<Meta\b(?P<attrs>(?:[^>{}]|\{[^}]*\})*?)/?>", re.DOTALL)
_STRING_ATTR = r"{name}\s*=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|\{{\s*[\"'`](?P<expr>[^\"'`]*)[\"'`]\s*\}})"
_OF_ATTR = re.compile(r"\bof\s*=\s*\{\s*(?P<ident>[A-Za-z_$][\w$]*)(?:\.[\w$.]+)?\s*\}")
_TEMPLATE_ATTR = re.compile(r"\bisTemplate\b(?:\s*=\s*\{\s*(?P<value>true|false)\s*\})?")
_TAGS_ATTR = re.compile(r"\btags\s*=\s*\{\s*\[(?P<items>[^\]]*)\]\s*\}")
_QUOTED = re.compile(r"[\"'`]([^\"'`]*)[\"'`]")


def analyze(content: str) -> DocsAnalysis:
    """Report imports and ``<Meta>`` settings declared by an MDX file."""
    imports: List[str] = []
    bindings: Dict[str, str] = {}
    for match in _IMPORT_PATTERN.finditer(content):
        source = match.group("source")
        if source not in imports:
            imports.append(source)
        for name in _bound_names(match.group("clause") or ""):
            bindings[name] = source

    meta = _META_PATTERN.search(content)
    if meta is None:
        return DocsAnalysis(imports=imports)

    attrs = meta.group("attrs")
    of: Optional[str] = None
    of_match = _OF_ATTR.search(attrs)
    if of_match:
        identifier = of_match.group("ident")
        if identifier not in bindings:
            raise ValueError(
                f"Meta of={{{identifier}}} references '{identifier}' which is not imported"
            )
        of = bindings[identifier]

    template = _TEMPLATE_ATTR.search(attrs)
    is_template = bool(template) and (template.group("value") or "true") == "true"

    tags: List[str] = []
    tags_match = _TAGS_ATTR.search(attrs)
    if tags_match:
        tags = _QUOTED.findall(tags_match.group("items"))

    return DocsAnalysis(
        imports=imports,
        title=_string_attr(attrs, "title"),
        of=of,
        name=_string_attr(attrs, "name"),
        is_template=is_template,
        tags=tags,
    )


def _string_attr(attrs: str, name: str) -> Optional[str]:
    match = re.search(r"\b" + _STRING_ATTR.format(name=name), attrs)
    if not match:
        return None
    for group in ("dq", "sq", "expr"):
        value = match.group(group)
        if value is not None:
            return value
    return None


def _bound_names(clause: str) -> List[str]:
    names: List[str] = []
    clause = clause.strip()
    if not clause:
        return names
    named = re.search(r"\{([^}]*)\}", clause)
    if named:
        for item in named.group(1).split(","):
            item = item.strip()
            if not item:
                continue
            alias = re.split(r"\s+as\s+", item)
            names.append(alias[-1].strip())
        clause = clause[: named.start()] + clause[named.end() :]
    namespace = re.search(r"\*\s*as\s+([A-Za-z_$][\w$]*)", clause)
    if namespace:
        names.append(namespace.group(1))
        clause = clause[: namespace.start()] + clause[namespace.end() :]
    default = clause.strip().strip(",").strip()
    if default:
        names.append(default)
    return names


__all__ = ["analyze"]
