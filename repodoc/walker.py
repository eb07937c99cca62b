"""Single-pass committed-tree traversal producing a structure listing and file map."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from .errors import FileReadError, TreeAccessError
from .filters import FilterPolicy
from .logging import get_logger
from .models import ExtractedFile, ExtractionResult, FileEntry, TreeEntry

DEFAULT_MAX_FILES = 10

_logger = get_logger("walker")


class TreeSource(Protocol):
    """Read access to a committed tree."""

    def list_tree(self, treeish: str) -> List[TreeEntry]: ...

    def read_blob(self, oid: str) -> bytes: ...


def iter_tree(
    source: TreeSource, treeish: str
) -> Iterator[Tuple[str, TreeEntry, int]]:
    """Yield ``(path, entry, depth)`` depth-first, parents before children.

    Listing the root is fatal (:class:`TreeAccessError`); a subtree that cannot
    be listed is logged and skipped.
    """
    try:
        root_entries = source.list_tree(treeish)
    except Exception as exc:
        raise TreeAccessError(f"Unable to list tree {treeish}: {exc}") from exc
    yield from _iter_entries(source, root_entries, prefix="", depth=0)


def _iter_entries(
    source: TreeSource, entries: List[TreeEntry], *, prefix: str, depth: int
) -> Iterator[Tuple[str, TreeEntry, int]]:
    for entry in entries:
        path = f"{prefix}{entry.name}"
        yield path, entry, depth
        if entry.type != "tree":
            continue
        try:
            children = source.list_tree(entry.oid)
        except Exception as exc:
            _logger.warning("Skipping subtree %s: %s", path, exc)
            continue
        yield from _iter_entries(source, children, prefix=f"{path}/", depth=depth + 1)


def structure_line(path: str, entry: TreeEntry, depth: int) -> str:
    return f"{'  ' * depth}- {path} ({entry.kind})"


class RepositoryWalker:
    """Walks a commit once, listing every entry and extracting eligible files."""

    def __init__(
        self,
        policy: FilterPolicy | None = None,
        *,
        max_files: int = DEFAULT_MAX_FILES,
    ) -> None:
        if max_files < 0:
            raise ValueError("max_files must be zero or positive")
        self.policy = policy or FilterPolicy()
        self.max_files = max_files

    def walk(self, source: TreeSource, treeish: str) -> ExtractionResult:
        lines: List[str] = []
        files: Dict[str, ExtractedFile] = {}
        skipped: List[str] = []
        cap_logged = False

        for path, entry, depth in iter_tree(source, treeish):
            lines.append(structure_line(path, entry, depth))
            if entry.type != "blob" or not self.policy.should_include(path):
                continue
            if not self.accepting(len(files)):
                if not cap_logged:
                    _logger.info(
                        "Reached the %d file extraction cap at %s; listing continues",
                        self.max_files,
                        path,
                    )
                    cap_logged = True
                continue
            extracted = self._extract(source, path, entry)
            if extracted is None:
                skipped.append(path)
                continue
            files[path] = extracted

        structure = "\n".join(lines) + ("\n" if lines else "")
        _logger.debug(
            "Walked %d entries, extracted %d files, skipped %d", len(lines), len(files), len(skipped)
        )
        return ExtractionResult(
            structure=structure,
            file_contents=files,
            commit=treeish,
            skipped=skipped,
        )

    def accepting(self, extracted: int) -> bool:
        """Return True while fewer than ``max_files`` files have been extracted."""
        return extracted < self.max_files

    def _extract(
        self, source: TreeSource, path: str, entry: TreeEntry
    ) -> Optional[ExtractedFile]:
        try:
            file_entry = read_file(source, path, entry)
        except FileReadError as exc:
            _logger.warning("%s", exc)
            return None
        return ExtractedFile.from_entry(file_entry)


def read_file(source: TreeSource, path: str, entry: TreeEntry) -> FileEntry:
    """Read and strictly decode one blob, raising :class:`FileReadError` on failure."""
    try:
        data = source.read_blob(entry.oid)
    except Exception as exc:
        raise FileReadError(path, str(exc)) from exc
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FileReadError(path, f"not valid UTF-8 ({exc.reason})") from exc
    return FileEntry(path=path, raw_content=text)


__all__ = [
    "DEFAULT_MAX_FILES",
    "RepositoryWalker",
    "TreeSource",
    "iter_tree",
    "read_file",
    "structure_line",
]
