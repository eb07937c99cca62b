"""Error taxonomy for repository ingestion and documentation runs."""

from __future__ import annotations


class RepoDocError(RuntimeError):
    """Base class for every error raised by repodoc."""


class RepositoryURLError(RepoDocError, ValueError):
    """Raised when a repository URL lacks a recognizable host/owner/name."""


class RepositoryFetchError(RepoDocError):
    """Clone, network, or authentication failure. Fatal to the request."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Failed to clone {url}: {message}")
        self.url = url
        self.upstream_message = message


class BranchResolutionError(RepoDocError):
    """The default branch or its head commit could not be determined. Fatal."""

    def __init__(self, ref: str, message: str = "") -> None:
        detail = f": {message}" if message else ""
        super().__init__(f"Could not resolve a commit for {ref}{detail}")
        self.ref = ref


class TreeAccessError(RepoDocError):
    """The root tree of a commit could not be listed. Fatal to the walk."""


class FileReadError(RepoDocError):
    """A single file could not be read or decoded. Recoverable."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason


class SummarizationError(RepoDocError):
    """A file could not be summarized; callers fall back to raw text."""


class CleanupError(RepoDocError):
    """Workspace teardown failed. Logged, never propagated."""


class GenerationError(RepoDocError):
    """The generation backend failed to produce fragments."""


__all__ = [
    "BranchResolutionError",
    "CleanupError",
    "FileReadError",
    "GenerationError",
    "RepoDocError",
    "RepositoryFetchError",
    "RepositoryURLError",
    "SummarizationError",
    "TreeAccessError",
]
