"""Base classes for per-file indexer plugins."""

from __future__ import annotations

import inspect
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Pattern, Sequence, Union

from ..models import IndexInput

MakeTitle = Callable[[Optional[str]], str]
IndexFunction = Callable[..., Union[Sequence[IndexInput], Awaitable[Sequence[IndexInput]]]]


class Indexer(ABC):
    """Contract for indexers that turn a stories file into raw story descriptors."""

    name: str = "indexer"

    @abstractmethod
    def test(self, path: str) -> bool:
        """Return True when this indexer handles the file at ``path``."""

    @abstractmethod
    async def create_index(self, path: str, *, make_title: MakeTitle) -> List[IndexInput]:
        """Return one descriptor per story exported by the file."""


class FunctionIndexer(Indexer):
    """Adapts a plain (sync or async) function and a path regex into an Indexer."""

    def __init__(self, pattern: Union[str, Pattern[str]], func: IndexFunction, *, name: str | None = None) -> None:
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.func = func
        self.name = name or getattr(func, "__name__", "function")

    def test(self, path: str) -> bool:
        return self.pattern.search(path) is not None

    async def create_index(self, path: str, *, make_title: MakeTitle) -> List[IndexInput]:
        result: Any = self.func(path, make_title=make_title)
        if inspect.isawaitable(result):
            result = await result
        return list(result)
