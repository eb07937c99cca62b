"""Transient shallow clones with guaranteed cleanup."""

from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Optional

from ..errors import BranchResolutionError, CleanupError, RepositoryFetchError
from ..logging import get_logger
from ..urls import redact
from .client import GitClient, GitCommandError, GitTreeSource


@dataclass(frozen=True)
class Checkout:
    """A cloned working tree pinned to a concrete commit."""

    path: Path
    commit: str
    url: str

    def tree_source(self, client: GitClient) -> GitTreeSource:
        return GitTreeSource(client, self.path)


class Workspace:
    """Acquires a disposable local clone and removes it on every exit path."""

    DEFAULT_PREFIX = "repodoc-clone-"

    def __init__(
        self,
        client: GitClient | None = None,
        *,
        temp_root: Optional[Path] = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self.client = client or GitClient()
        self.temp_root = temp_root
        self.prefix = prefix
        self.logger = get_logger("workspace")

    @contextmanager
    def checkout(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        ref: str = "HEAD",
    ) -> Iterator[Checkout]:
        """Clone ``url`` into a fresh temporary directory and yield the checkout.

        The default branch is cloned with ``--depth 1 --single-branch`` and
        ``ref`` is resolved to a commit id before anything walks the tree.
        """
        directory = Path(
            tempfile.mkdtemp(
                prefix=self.prefix,
                dir=str(self.temp_root) if self.temp_root is not None else None,
            )
        )
        safe_url = redact(url)
        self.logger.debug("Created workspace %s for %s", directory, safe_url)
        try:
            self.logger.info("Cloning %s (depth=1)", safe_url)
            try:
                self.client.clone(url, directory, headers=headers)
            except GitCommandError as exc:
                raise RepositoryFetchError(safe_url, exc.stderr or str(exc)) from exc

            try:
                commit = self.client.resolve_commit(directory, ref)
            except GitCommandError as exc:
                raise BranchResolutionError(ref, exc.stderr) from exc
            if not commit:
                raise BranchResolutionError(ref, "the clone has no commits")

            self.logger.debug("Resolved %s to %s", ref, commit)
            yield Checkout(path=directory, commit=commit, url=safe_url)
        finally:
            self._cleanup(directory)

    def _cleanup(self, directory: Path) -> None:
        try:
            shutil.rmtree(directory)
        except FileNotFoundError:
            return
        except OSError as exc:
            error = CleanupError(f"Failed to remove workspace {directory}: {exc}")
            self.logger.error("%s", error)
            return
        self.logger.debug("Removed workspace %s", directory)


__all__ = ["Checkout", "Workspace"]
