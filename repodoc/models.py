"""Core data models shared across repodoc components."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Dict, List, Optional

_FENCE_LABELS = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".java": "java",
    ".c": "c",
    ".cpp": "c++",
    ".cs": "csharp",
    ".go": "go",
    ".py": "python",
    ".rb": "ruby",
    ".sh": "bash",
    ".md": "markdown",
    ".json": "json",
    ".yaml": "yaml",
    ".html": "html",
    ".css": "css",
    ".sql": "sql",
}


def fence_label(path: str) -> str:
    """Return the code-fence label for ``path`` or an empty string when unknown."""
    return _FENCE_LABELS.get(posixpath.splitext(path)[1], "")


def fence(path: str, source: str) -> str:
    """Wrap ``source`` in a markdown code fence labelled from the extension."""
    marker = f"```{fence_label(path)}"
    return f"{marker}\n{source}\n{marker}"


@dataclass(frozen=True)
class TreeEntry:
    """One row of a git tree listing."""

    mode: str
    type: str
    oid: str
    name: str

    @property
    def kind(self) -> str:
        if self.type == "tree":
            return "directory"
        if self.type == "blob":
            return "file"
        return "unknown"


@dataclass(frozen=True)
class FileEntry:
    """A committed path and its raw content as read during the walk."""

    path: str
    raw_content: str
    is_directory: bool = False


@dataclass(frozen=True)
class ExtractedFile:
    """Fenced file content handed to summarization and prompting."""

    path: str
    content: str
    source: str
    language: str = ""

    @classmethod
    def from_entry(cls, entry: FileEntry) -> "ExtractedFile":
        return cls(
            path=entry.path,
            content=fence(entry.path, entry.raw_content),
            source=entry.raw_content,
            language=fence_label(entry.path),
        )


@dataclass
class ExtractionResult:
    """Directory listing plus the bounded map of extracted files."""

    structure: str
    file_contents: Dict[str, ExtractedFile] = field(default_factory=dict)
    commit: Optional[str] = None
    skipped: List[str] = field(default_factory=list)

    def as_payload(self) -> Dict[str, object]:
        """Return the ``{structure, fileContents}`` shape consumed by prompt builders."""
        return {
            "structure": self.structure,
            "fileContents": {path: item.content for path, item in self.file_contents.items()},
        }


__all__ = [
    "ExtractedFile",
    "ExtractionResult",
    "FileEntry",
    "TreeEntry",
    "fence",
    "fence_label",
]
