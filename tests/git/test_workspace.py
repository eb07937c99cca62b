"""Tests for transient clone workspaces."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from repodoc.errors import BranchResolutionError, RepositoryFetchError
from repodoc.git.client import GitClient, GitCommandError
from repodoc.git.workspace import Workspace
from repodoc.walker import RepositoryWalker

SHA = "0123456789abcdef0123456789abcdef01234567"


class _ScriptedRunner:
    """Fake git runner that records calls and can fail chosen subcommands."""

    def __init__(self, *, fail: str | None = None, commit: bytes = SHA.encode() + b"\n") -> None:
        self.fail = fail
        self.commit = commit
        self.calls: list[list[str]] = []
        self.clone_targets: list[Path] = []

    def __call__(self, args, cwd, env=None, timeout=None):
        argv = list(args)
        self.calls.append(argv)
        subcommand = next(arg for arg in argv[1:] if not arg.startswith("-") and "=" not in arg)
        if subcommand == self.fail:
            raise GitCommandError(
                argv, 128, "fatal: repository 'https://user:pw@example.com/a/b.git' not found"
            )
        if subcommand == "clone":
            target = Path(argv[-1])
            self.clone_targets.append(target)
            (target / ".git").mkdir(parents=True, exist_ok=True)
            return b""
        if subcommand == "rev-parse":
            return self.commit
        return b""


def test_checkout_yields_resolved_commit_and_cleans_up(tmp_path: Path) -> None:
    runner = _ScriptedRunner()
    workspace = Workspace(GitClient(runner=runner), temp_root=tmp_path)

    with workspace.checkout("https://example.com/a/b.git") as checkout:
        assert checkout.commit == SHA
        assert checkout.path.exists()
        assert checkout.path.parent == tmp_path
        assert checkout.path.name.startswith("repodoc-clone-")
        path = checkout.path

    assert not path.exists()
    assert list(tmp_path.iterdir()) == []


def test_clone_failure_raises_fetch_error_and_leaves_nothing(tmp_path: Path) -> None:
    runner = _ScriptedRunner(fail="clone")
    workspace = Workspace(GitClient(runner=runner), temp_root=tmp_path)

    with pytest.raises(RepositoryFetchError) as excinfo:
        with workspace.checkout("https://user:pw@example.com/a/b.git"):
            pytest.fail("checkout must not yield after a failed clone")

    assert "pw" not in str(excinfo.value)
    assert excinfo.value.url == "https://***@example.com/a/b.git"
    assert list(tmp_path.iterdir()) == []


def test_resolution_failure_raises_branch_error(tmp_path: Path) -> None:
    runner = _ScriptedRunner(fail="rev-parse")
    workspace = Workspace(GitClient(runner=runner), temp_root=tmp_path)

    with pytest.raises(BranchResolutionError):
        with workspace.checkout("https://example.com/a/b.git"):
            pass

    assert list(tmp_path.iterdir()) == []


def test_empty_resolution_raises_branch_error(tmp_path: Path) -> None:
    runner = _ScriptedRunner(commit=b"\n")
    workspace = Workspace(GitClient(runner=runner), temp_root=tmp_path)

    with pytest.raises(BranchResolutionError):
        with workspace.checkout("https://example.com/a/b.git"):
            pass

    assert list(tmp_path.iterdir()) == []


def test_error_inside_block_still_cleans_up(tmp_path: Path) -> None:
    workspace = Workspace(GitClient(runner=_ScriptedRunner()), temp_root=tmp_path)

    with pytest.raises(KeyError):
        with workspace.checkout("https://example.com/a/b.git"):
            raise KeyError("boom")

    assert list(tmp_path.iterdir()) == []


def test_cleanup_failure_is_logged_not_raised(tmp_path: Path, monkeypatch, caplog) -> None:
    workspace = Workspace(GitClient(runner=_ScriptedRunner()), temp_root=tmp_path)

    def broken_rmtree(path, *args, **kwargs):
        raise PermissionError("read-only file system")

    monkeypatch.setattr("repodoc.git.workspace.shutil.rmtree", broken_rmtree)

    with caplog.at_level("ERROR", logger="repodoc.workspace"):
        with workspace.checkout("https://example.com/a/b.git") as checkout:
            commit = checkout.commit

    assert commit == SHA
    assert any("Failed to remove workspace" in record.getMessage() for record in caplog.records)


def test_concurrent_checkouts_use_distinct_directories(tmp_path: Path) -> None:
    runner = _ScriptedRunner()
    workspace = Workspace(GitClient(runner=runner), temp_root=tmp_path)

    with workspace.checkout("https://example.com/a/b.git") as first:
        with workspace.checkout("https://example.com/a/b.git") as second:
            assert first.path != second.path


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_checkout_and_walk_real_repository(tmp_path: Path) -> None:
    origin = tmp_path / "origin"
    (origin / "src").mkdir(parents=True)
    (origin / "src" / "index.ts").write_text(
        "export function add(a: number, b: number): number { return a + b; }\n",
        encoding="utf-8",
    )
    (origin / "README.md").write_text("# Demo\n", encoding="utf-8")
    _git("init", "--quiet", cwd=origin)
    _git("add", ".", cwd=origin)
    _git(
        "-c",
        "user.name=Test",
        "-c",
        "user.email=test@example.com",
        "commit",
        "--quiet",
        "-m",
        "initial",
        cwd=origin,
    )

    clones = tmp_path / "clones"
    clones.mkdir()
    client = GitClient()
    workspace = Workspace(client, temp_root=clones)

    with workspace.checkout(origin.as_uri()) as checkout:
        result = RepositoryWalker().walk(checkout.tree_source(client), checkout.commit)

    assert result.structure == "- README.md (file)\n- src (directory)\n  - src/index.ts (file)\n"
    assert list(result.file_contents) == ["src/index.ts"]
    assert len(result.commit or "") == 40
    assert list(clones.iterdir()) == []
