"""Tests for the FastAPI service mode."""

from __future__ import annotations

import json

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from repodoc import __version__
from repodoc.errors import BranchResolutionError, GenerationError, RepositoryFetchError
from repodoc.llm import GenerationOptions, GenerationStream, LLMRunner
from repodoc.models import ExtractedFile, ExtractionResult, FileEntry
from repodoc.orchestrator import DocumentationRun
from repodoc.prompting import FilePrompt
from repodoc.service import create_app

URL = "https://github.com/acme/widgets"


class _StubOrchestrator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.extract_calls: list[dict[str, object]] = []
        self.generate_calls: list[dict[str, object]] = []
        self.readme_calls: list[dict[str, object]] = []
        self.readme_fragments: list[str] = ["# Widgets\n", "Adds numbers."]

    def extract(self, url, *, token=None, headers=None, max_files=None) -> ExtractionResult:
        self.extract_calls.append(
            {"url": url, "token": token, "headers": headers, "max_files": max_files}
        )
        if self.error is not None:
            raise self.error
        extracted = ExtractedFile.from_entry(FileEntry("src/a.ts", "export const a = 1;"))
        return ExtractionResult(
            structure="- src (directory)\n  - src/a.ts (file)\n",
            file_contents={"src/a.ts": extracted},
            commit="c0ffee",
            skipped=["src/broken.ts"],
        )

    def generate(self, url, *, token=None, headers=None, max_files=None) -> DocumentationRun:
        self.generate_calls.append({"url": url, "max_files": max_files})
        if self.error is not None:
            raise self.error
        runner = LLMRunner(
            model="m",
            base_url=None,
            api_key=None,
            options=GenerationOptions(chunk_delay=0),
            runner=lambda request: ["Docs line\n"],
        )
        return DocumentationRun([FilePrompt("src/a.ts", "prompt", True)], runner)

    def readme(self, url, *, token=None, headers=None, max_files=None) -> GenerationStream:
        self.readme_calls.append({"url": url, "token": token, "max_files": max_files})
        if self.error is not None:
            raise self.error
        return GenerationStream(self.readme_fragments)


def _client(orchestrator: _StubOrchestrator) -> TestClient:
    return TestClient(create_app(lambda: orchestrator))


def test_health_endpoint() -> None:
    response = _client(_StubOrchestrator()).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


def test_extract_endpoint_returns_structure_and_contents() -> None:
    orchestrator = _StubOrchestrator()
    response = _client(orchestrator).post(
        "/extract",
        json={"url": URL, "token": "t", "headers": {"X-Trace": "1"}, "max_files": 3},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["structure"].endswith("  - src/a.ts (file)\n")
    assert body["fileContents"] == {"src/a.ts": "```typescript\nexport const a = 1;\n```typescript"}
    assert body["commit"] == "c0ffee"
    assert body["skipped"] == ["src/broken.ts"]
    assert orchestrator.extract_calls == [
        {"url": URL, "token": "t", "headers": {"X-Trace": "1"}, "max_files": 3}
    ]


def test_extract_rejects_negative_max_files() -> None:
    response = _client(_StubOrchestrator()).post("/extract", json={"url": URL, "max_files": -1})
    assert response.status_code == 422


def test_extract_rejects_invalid_url() -> None:
    from repodoc.orchestrator import Orchestrator

    app = create_app(lambda: Orchestrator())
    response = TestClient(app).post("/extract", json={"url": "nonsense"})
    assert response.status_code == 400


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (RepositoryFetchError(URL, "repository not found"), 502),
        (BranchResolutionError("HEAD", "empty repository"), 422),
    ],
)
def test_extract_maps_errors_to_status(error: Exception, status: int) -> None:
    response = _client(_StubOrchestrator(error)).post("/extract", json={"url": URL})
    assert response.status_code == status
    assert response.json()["detail"] == str(error)


def test_generate_streams_ndjson_events() -> None:
    orchestrator = _StubOrchestrator()
    response = _client(orchestrator).post("/generate", json={"url": URL, "max_files": 1})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    lines = [json.loads(line) for line in response.text.splitlines() if line]
    assert lines == [
        {"status": "generating", "files": ["src/a.ts"]},
        {"path": "src/a.ts", "type": "chunk", "text": "Docs line\n"},
        {"path": "src/a.ts", "type": "info", "message": "done"},
        {"status": "complete"},
    ]
    assert orchestrator.generate_calls == [{"url": URL, "max_files": 1}]


def test_generate_reports_fetch_failure() -> None:
    error = RepositoryFetchError(URL, "authentication failed")
    response = _client(_StubOrchestrator(error)).post("/generate", json={"url": URL})
    assert response.status_code == 502


def test_readme_streams_ndjson_events() -> None:
    orchestrator = _StubOrchestrator()
    response = _client(orchestrator).post("/readme", json={"url": URL, "token": "t"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    lines = [json.loads(line) for line in response.text.splitlines() if line]
    assert lines == [
        {"status": "generating", "files": ["README.md"]},
        {"path": "README.md", "type": "chunk", "text": "# Widgets\n"},
        {"path": "README.md", "type": "chunk", "text": "Adds numbers."},
        {"path": "README.md", "type": "info", "message": "done"},
        {"status": "complete"},
    ]
    assert orchestrator.readme_calls == [{"url": URL, "token": "t", "max_files": None}]


def _failing_fragments():
    yield "# Widgets\n"
    raise GenerationError("backend unavailable")


def test_readme_reports_generation_failure_in_stream() -> None:
    orchestrator = _StubOrchestrator()
    orchestrator.readme_fragments = _failing_fragments()
    response = _client(orchestrator).post("/readme", json={"url": URL})

    lines = [json.loads(line) for line in response.text.splitlines() if line]
    assert lines[1:] == [
        {"path": "README.md", "type": "chunk", "text": "# Widgets\n"},
        {"path": "README.md", "type": "error", "message": "backend unavailable"},
        {"status": "complete"},
    ]


def test_readme_maps_fetch_failure_to_bad_gateway() -> None:
    error = RepositoryFetchError(URL, "authentication failed")
    response = _client(_StubOrchestrator(error)).post("/readme", json={"url": URL})
    assert response.status_code == 502
