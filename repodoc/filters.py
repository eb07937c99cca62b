"""Ignore rules and the extraction eligibility policy."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import FrozenSet, Iterable, List, Sequence, Tuple

DEFAULT_IGNORE_PATTERNS: Tuple[str, ...] = (
    "node_modules/",
    ".git",
    "dist/",
    "build/",
    "coverage/",
    "*.log",
    "*.env",
    "*.lock",
    "*.md",
    "*.min.js",
    "package-lock.json",
    ".vscode",
    ".editorconfig",
    ".gitignore",
    "license",
    "LICENSE",
    "tsconfig.json",
    ".dockerignore",
    "tailwind.config.ts",
    "examples",
    "example",
    "tests",
    "test",
)

SUPPORTED_EXTENSIONS: FrozenSet[str] = frozenset(
    ".js .json .ts .jsx .tsx .py .java .cpp .rb .php .go .rs .swift .cs".split()
)

_GLOB_CHARS = set("*?[")
_WORD_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class IgnoreRule:
    """A single ignore pattern evaluated against repository-relative paths.

    ``name/`` only matches directory segments, globs are matched against every
    segment, and plain names must equal a segment. A plain word also matches a
    dot-separated part of the file name, so ``test`` excludes ``api.test.ts``.
    """

    pattern: str
    directory_only: bool
    is_glob: bool
    is_word: bool

    @classmethod
    def parse(cls, raw: str) -> "IgnoreRule | None":
        pattern = raw.strip()
        if not pattern or pattern.startswith("#"):
            return None
        directory_only = pattern.endswith("/")
        pattern = pattern.strip("/")
        if not pattern:
            return None
        return cls(
            pattern=pattern,
            directory_only=directory_only,
            is_glob=any(char in _GLOB_CHARS for char in pattern),
            is_word=bool(_WORD_RE.match(pattern)),
        )

    def matches(self, path: str) -> bool:
        segments = [segment for segment in path.split("/") if segment]
        if not segments:
            return False
        if self.directory_only:
            return any(self._match_segment(segment) for segment in segments[:-1])
        if any(self._match_segment(segment) for segment in segments):
            return True
        if self.is_word:
            return self.pattern in segments[-1].split(".")[:-1]
        return False

    def _match_segment(self, segment: str) -> bool:
        if self.is_glob:
            return fnmatchcase(segment, self.pattern)
        return segment == self.pattern


@dataclass(frozen=True)
class IgnoreRuleSet:
    """Ordered, immutable collection of ignore rules loaded once per extraction."""

    patterns: Tuple[str, ...]
    rules: Tuple[IgnoreRule, ...] = field(repr=False)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "IgnoreRuleSet":
        raw: List[str] = []
        rules: List[IgnoreRule] = []
        for pattern in patterns:
            rule = IgnoreRule.parse(pattern)
            if rule is None:
                continue
            raw.append(pattern.strip())
            rules.append(rule)
        return cls(patterns=tuple(raw), rules=tuple(rules))

    @classmethod
    def default(cls) -> "IgnoreRuleSet":
        return cls.from_patterns(DEFAULT_IGNORE_PATTERNS)

    def matches(self, path: str) -> bool:
        return any(rule.matches(path) for rule in self.rules)


@dataclass(frozen=True)
class FilterPolicy:
    """Decides which repository paths are eligible for content extraction."""

    ignore: IgnoreRuleSet = field(default_factory=IgnoreRuleSet.default)
    extensions: FrozenSet[str] = SUPPORTED_EXTENSIONS

    @classmethod
    def build(
        cls,
        *,
        ignore_patterns: Sequence[str] | None = None,
        extra_ignore_patterns: Sequence[str] = (),
        extensions: Iterable[str] | None = None,
    ) -> "FilterPolicy":
        patterns = list(DEFAULT_IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns)
        patterns.extend(extra_ignore_patterns)
        normalized = SUPPORTED_EXTENSIONS
        if extensions is not None:
            normalized = frozenset(_normalize_extension(ext) for ext in extensions if ext)
        return cls(ignore=IgnoreRuleSet.from_patterns(patterns), extensions=normalized)

    def should_include(self, path: str) -> bool:
        if self.ignore.matches(path):
            return False
        return posixpath.splitext(path)[1] in self.extensions


def _normalize_extension(extension: str) -> str:
    extension = extension.strip()
    return extension if extension.startswith(".") else f".{extension}"


__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "FilterPolicy",
    "IgnoreRule",
    "IgnoreRuleSet",
    "SUPPORTED_EXTENSIONS",
]
