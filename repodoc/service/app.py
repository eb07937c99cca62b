"""FastAPI application entrypoint for repodoc service mode."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, Iterator, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import RepoDocConfig
from ..errors import (
    BranchResolutionError,
    RepoDocError,
    RepositoryFetchError,
    RepositoryURLError,
)
from ..llm import GenerationStream
from ..logging import get_logger
from ..orchestrator import DocumentationRun, GenerationEvent, Orchestrator

README_PATH = "README.md"

_logger = get_logger("service")


class RepositoryRequest(BaseModel):
    url: str
    token: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    max_files: Optional[int] = Field(default=None, ge=0)


class ExtractResponse(BaseModel):
    structure: str
    fileContents: Dict[str, str]
    commit: Optional[str] = None
    skipped: List[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    version: str


_ERROR_STATUS = (
    (RepositoryURLError, 400),
    (BranchResolutionError, 422),
    (RepositoryFetchError, 502),
)


def _status_for(exc: RepoDocError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


def _ndjson(run: DocumentationRun) -> Iterator[bytes]:
    yield _line({"status": "generating", "files": run.paths})
    for event in run.events():
        yield _line(event.as_dict())
    yield _line({"status": "complete"})


def _readme_ndjson(stream: GenerationStream) -> Iterator[bytes]:
    yield _line({"status": "generating", "files": [README_PATH]})
    try:
        for fragment in stream:
            yield _line(GenerationEvent(README_PATH, "chunk", fragment).as_dict())
    except RepoDocError as exc:
        _logger.warning("README generation failed: %s", exc)
        yield _line(GenerationEvent(README_PATH, "error", str(exc)).as_dict())
    else:
        yield _line(GenerationEvent(README_PATH, "info", "done").as_dict())
    yield _line({"status": "complete"})


def _line(payload: Dict[str, Any]) -> bytes:
    return (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] | None = None,
    *,
    config: RepoDocConfig | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing the extract, generate and readme operations."""

    factory = orchestrator_factory or (lambda: Orchestrator(config))
    app = FastAPI(title="RepoDoc Service", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        return factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/extract", response_model=ExtractResponse)
    async def extract(
        payload: RepositoryRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ExtractResponse:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None,
            lambda: orchestrator.extract(
                payload.url,
                token=payload.token,
                headers=payload.headers,
                max_files=payload.max_files,
            ),
        )
        return ExtractResponse(
            structure=result.structure,
            fileContents={path: item.content for path, item in result.file_contents.items()},
            commit=result.commit,
            skipped=result.skipped,
        )

    @app.post("/generate")
    async def generate(
        payload: RepositoryRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> StreamingResponse:
        loop = asyncio.get_running_loop()
        run = await loop.run_in_executor(
            None,
            lambda: orchestrator.generate(
                payload.url,
                token=payload.token,
                headers=payload.headers,
                max_files=payload.max_files,
            ),
        )
        return StreamingResponse(_ndjson(run), media_type="application/x-ndjson")

    @app.post("/readme")
    async def readme(
        payload: RepositoryRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> StreamingResponse:
        loop = asyncio.get_running_loop()
        stream = await loop.run_in_executor(
            None,
            lambda: orchestrator.readme(
                payload.url,
                token=payload.token,
                headers=payload.headers,
                max_files=payload.max_files,
            ),
        )
        return StreamingResponse(_readme_ndjson(stream), media_type="application/x-ndjson")

    @app.exception_handler(RepoDocError)
    async def repodoc_error_handler(_: Any, exc: RepoDocError) -> JSONResponse:
        return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000, *, config: RepoDocConfig | None = None
) -> None:  # pragma: no cover - integration path
    app = create_app(config=config)
    uvicorn.run(app, host=host, port=port)
