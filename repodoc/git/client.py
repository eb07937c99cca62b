"""Thin subprocess wrapper around the git commands repodoc needs."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional

from ..models import TreeEntry
from ..urls import redact

Runner = Callable[..., bytes]


class GitCommandError(RuntimeError):
    """Raised when a git invocation exits unsuccessfully."""

    def __init__(self, args: Iterable[str], returncode: int, stderr: str) -> None:
        command = redact(" ".join(_mask_header(arg) for arg in args))
        message = redact(stderr.strip()) or f"exit code {returncode}"
        super().__init__(f"`{command}` failed: {message}")
        self.returncode = returncode
        self.stderr = redact(stderr.strip())


def _mask_header(arg: str) -> str:
    if arg.startswith("http.extraHeader="):
        name = arg.split("=", 1)[1].split(":", 1)[0]
        return f"http.extraHeader={name}: ***"
    return arg


class GitClient:
    """Runs clone, rev-parse, ls-tree and cat-file against local checkouts."""

    def __init__(
        self,
        runner: Runner | None = None,
        *,
        executable: str = "git",
        timeout: Optional[float] = 120.0,
    ) -> None:
        self._runner = runner or self._default_runner
        self.executable = executable
        self.timeout = timeout

    def clone(
        self,
        url: str,
        destination: Path,
        *,
        headers: Mapping[str, str] | None = None,
        depth: int = 1,
    ) -> None:
        """Shallow, single-branch clone of the default branch into ``destination``."""
        args = [self.executable]
        for name, value in (headers or {}).items():
            args.extend(["-c", f"http.extraHeader={name}: {value}"])
        args.extend(
            [
                "clone",
                "--quiet",
                "--depth",
                str(depth),
                "--single-branch",
                "--no-tags",
                url,
                str(destination),
            ]
        )
        self._run(args, cwd=destination.parent)

    def resolve_commit(self, repo: Path, ref: str = "HEAD") -> str:
        """Return the full commit id ``ref`` points at."""
        output = self._run(
            [self.executable, "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=repo,
        )
        return output.decode("utf-8", errors="replace").strip()

    def list_tree(self, repo: Path, treeish: str) -> List[TreeEntry]:
        """List the immediate entries of ``treeish`` in git's tree order."""
        output = self._run([self.executable, "ls-tree", "-z", treeish], cwd=repo)
        entries: List[TreeEntry] = []
        for record in output.split(b"\0"):
            if not record:
                continue
            meta, _, raw_name = record.partition(b"\t")
            mode, obj_type, oid = meta.decode("ascii").split()
            entries.append(
                TreeEntry(
                    mode=mode,
                    type=obj_type,
                    oid=oid,
                    name=raw_name.decode("utf-8", errors="surrogateescape"),
                )
            )
        return entries

    def read_blob(self, repo: Path, oid: str) -> bytes:
        return self._run([self.executable, "cat-file", "blob", oid], cwd=repo)

    # ------------------------------------------------------------------
    # Helpers

    def _run(self, args: List[str], *, cwd: Path) -> bytes:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        return self._runner(args, cwd=cwd, env=env, timeout=self.timeout)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        timeout: Optional[float] = None,
    ) -> bytes:
        argv = list(args)
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd),
                env=env,
                check=True,
                capture_output=True,
                timeout=timeout,
            )
        except FileNotFoundError as exc:  # pragma: no cover - depends on environment
            raise GitCommandError(argv, 127, f"Unable to locate '{argv[0]}'") from exc
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(argv, -1, f"timed out after {timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode("utf-8", errors="replace")
            raise GitCommandError(argv, exc.returncode, stderr) from exc
        return completed.stdout


class GitTreeSource:
    """Tree source for the walker backed by a local clone."""

    def __init__(self, client: GitClient, repo: Path) -> None:
        self.client = client
        self.repo = repo

    def list_tree(self, treeish: str) -> List[TreeEntry]:
        return self.client.list_tree(self.repo, treeish)

    def read_blob(self, oid: str) -> bytes:
        return self.client.read_blob(self.repo, oid)


__all__ = ["GitClient", "GitCommandError", "GitTreeSource"]
