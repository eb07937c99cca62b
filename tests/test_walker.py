"""Tests for the single-pass repository walker."""

from __future__ import annotations

import logging

import pytest

from repodoc.errors import TreeAccessError
from repodoc.filters import FilterPolicy
from repodoc.walker import RepositoryWalker, iter_tree, read_file, structure_line
from repodoc.errors import FileReadError
from tests._fixtures.tree_builder import FakeTreeSource

ADD_SOURCE = "export function add(a: number, b: number): number { return a + b; }"


def test_walk_lists_every_entry_and_extracts_eligible_files() -> None:
    source = FakeTreeSource({"src/index.ts": ADD_SOURCE, "README.md": "# Demo"})

    result = RepositoryWalker().walk(source, "root")

    assert result.structure == "- README.md (file)\n- src (directory)\n  - src/index.ts (file)\n"
    assert list(result.file_contents) == ["src/index.ts"]
    extracted = result.file_contents["src/index.ts"]
    assert extracted.source == ADD_SOURCE
    assert extracted.content == f"```typescript\n{ADD_SOURCE}\n```typescript"
    assert extracted.language == "typescript"
    assert result.commit == "root"
    assert result.skipped == []


def test_iter_tree_is_depth_first_with_parents_first() -> None:
    source = FakeTreeSource(
        {
            "b.ts": "",
            "a/z.ts": "",
            "a/inner/deep.ts": "",
            "c/one.ts": "",
        }
    )

    visited = [(path, depth) for path, _, depth in iter_tree(source, "root")]

    assert visited == [
        ("a", 0),
        ("a/inner", 1),
        ("a/inner/deep.ts", 2),
        ("a/z.ts", 1),
        ("b.ts", 0),
        ("c", 0),
        ("c/one.ts", 1),
    ]


def test_cap_limits_extraction_but_not_listing(caplog: pytest.LogCaptureFixture) -> None:
    files = {f"src/file{index:02d}.ts": f"export const v{index} = {index};" for index in range(15)}
    source = FakeTreeSource(files)

    with caplog.at_level(logging.INFO, logger="repodoc.walker"):
        result = RepositoryWalker().walk(source, "root")

    assert len(result.file_contents) == 10
    assert list(result.file_contents) == [f"src/file{index:02d}.ts" for index in range(10)]
    for path in files:
        assert f"- {path} (file)" in result.structure
    # Blobs beyond the cap are never read.
    assert len(source.blob_reads) == 10
    cap_messages = [record for record in caplog.records if "extraction cap" in record.getMessage()]
    assert len(cap_messages) == 1


def test_custom_cap_and_zero_cap() -> None:
    files = {f"f{index}.ts": "x" for index in range(5)}

    assert len(RepositoryWalker(max_files=3).walk(FakeTreeSource(files), "root").file_contents) == 3
    empty = RepositoryWalker(max_files=0).walk(FakeTreeSource(files), "root")
    assert empty.file_contents == {}
    assert empty.structure.count("(file)") == 5


def test_negative_cap_is_rejected() -> None:
    with pytest.raises(ValueError):
        RepositoryWalker(max_files=-1)


def test_ignored_files_are_listed_but_not_extracted() -> None:
    source = FakeTreeSource(
        {
            "node_modules/lib/index.js": "module.exports = 1;",
            "src/app.test.ts": "it('works', () => {});",
            "src/app.ts": "export const app = 1;",
        }
    )

    result = RepositoryWalker().walk(source, "root")

    assert list(result.file_contents) == ["src/app.ts"]
    assert "    - node_modules/lib/index.js (file)" in result.structure
    assert "  - src/app.test.ts (file)" in result.structure


def test_undecodable_file_is_skipped_and_walk_continues(caplog: pytest.LogCaptureFixture) -> None:
    source = FakeTreeSource({"a.ts": b"\xff\xfe\x00binary", "b.ts": "export const b = 1;"})

    with caplog.at_level(logging.WARNING, logger="repodoc.walker"):
        result = RepositoryWalker().walk(source, "root")

    assert list(result.file_contents) == ["b.ts"]
    assert result.skipped == ["a.ts"]
    assert any("a.ts" in record.getMessage() for record in caplog.records)


def test_unreadable_blob_is_skipped() -> None:
    source = FakeTreeSource({"a.ts": "one", "b.ts": "two"})
    source.failing_blobs.add(source.oid_for("a.ts"))

    result = RepositoryWalker().walk(source, "root")

    assert result.skipped == ["a.ts"]
    assert list(result.file_contents) == ["b.ts"]


def test_skipped_files_do_not_count_toward_cap() -> None:
    source = FakeTreeSource({"a.ts": b"\xff", "b.ts": "b", "c.ts": "c"})

    result = RepositoryWalker(max_files=2).walk(source, "root")

    assert list(result.file_contents) == ["b.ts", "c.ts"]


def test_failing_subtree_is_skipped() -> None:
    source = FakeTreeSource({"broken/a.ts": "a", "ok/b.ts": "b"})
    source.failing_trees.add(source.oid_for("broken"))

    result = RepositoryWalker().walk(source, "root")

    assert "- broken (directory)" in result.structure
    assert "broken/a.ts" not in result.structure
    assert list(result.file_contents) == ["ok/b.ts"]


def test_failing_root_listing_is_fatal() -> None:
    source = FakeTreeSource({"a.ts": "a"})

    with pytest.raises(TreeAccessError):
        RepositoryWalker().walk(source, "missing")


def test_empty_tree_produces_empty_structure() -> None:
    result = RepositoryWalker().walk(FakeTreeSource({}), "root")
    assert result.structure == ""
    assert result.file_contents == {}


def test_walk_is_deterministic() -> None:
    files = {"src/a.ts": "a", "src/b.js": "b", "lib/c.tsx": "c"}
    first = RepositoryWalker().walk(FakeTreeSource(files), "root")
    second = RepositoryWalker().walk(FakeTreeSource(files), "root")
    assert first.structure == second.structure
    assert first.as_payload() == second.as_payload()


def test_walk_respects_custom_policy() -> None:
    policy = FilterPolicy.build(extensions=[".py"])
    source = FakeTreeSource({"tool.py": "print(1)", "index.ts": "1"})

    result = RepositoryWalker(policy).walk(source, "root")

    assert list(result.file_contents) == ["tool.py"]
    assert result.file_contents["tool.py"].content.startswith("```python\n")


def test_read_file_raises_file_read_error() -> None:
    source = FakeTreeSource({"a.ts": b"\xff"})
    entry = source.list_tree("root")[0]
    with pytest.raises(FileReadError) as excinfo:
        read_file(source, "a.ts", entry)
    assert excinfo.value.path == "a.ts"


def test_structure_line_indents_by_depth() -> None:
    source = FakeTreeSource({"a/b/c.ts": ""})
    lines = [structure_line(path, entry, depth) for path, entry, depth in iter_tree(source, "root")]
    assert lines == ["- a (directory)", "  - a/b (directory)", "    - a/b/c.ts (file)"]


def test_payload_exposes_fenced_contents() -> None:
    source = FakeTreeSource({"index.js": "console.log(1)"})
    payload = RepositoryWalker().walk(source, "root").as_payload()
    assert payload == {
        "structure": "- index.js (file)\n",
        "fileContents": {"index.js": "```javascript\nconsole.log(1)\n```javascript"},
    }
