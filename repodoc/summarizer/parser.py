"""Tree-sitter parser selection for the TypeScript/JavaScript family."""

from __future__ import annotations

import posixpath
from typing import Callable, Dict, Optional

import tree_sitter_typescript
from tree_sitter import Language, Parser, Tree

_GRAMMARS: Dict[str, Callable[[], object]] = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

# JavaScript sources may contain JSX, which only the tsx grammar accepts.
_GRAMMAR_BY_SUFFIX = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "tsx",
    ".jsx": "tsx",
    ".mjs": "tsx",
    ".cjs": "tsx",
}

DEFAULT_GRAMMAR = "typescript"


def grammar_for(path: Optional[str]) -> Optional[str]:
    """Return the grammar key used for ``path`` or None when it is not parseable."""
    if path is None:
        return DEFAULT_GRAMMAR
    return _GRAMMAR_BY_SUFFIX.get(posixpath.splitext(path.lower())[1])


def is_parseable(path: str) -> bool:
    return grammar_for(path) is not None


class ParserPool:
    """Lazily builds one tree-sitter parser per grammar."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def get(self, grammar: str) -> Parser:
        parser = self._parsers.get(grammar)
        if parser is not None:
            return parser
        try:
            factory = _GRAMMARS[grammar]
        except KeyError:
            raise ValueError(f"Unsupported grammar: {grammar}") from None
        parser = Parser(Language(factory()))
        self._parsers[grammar] = parser
        return parser

    def parse(self, source: bytes, grammar: str) -> Tree:
        return self.get(grammar).parse(source)


__all__ = ["DEFAULT_GRAMMAR", "ParserPool", "grammar_for", "is_parseable"]
