"""Pipeline orchestration for the extract, generate and README flows."""

from __future__ import annotations

import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterator, List, Mapping, Optional

from .config import LLMConfig, RepoDocConfig
from .git import GitClient, Workspace
from .llm import GenerationOptions, GenerationStream, LLMRunner
from .logging import get_logger
from .models import ExtractionResult
from .postproc import format_documentation
from .prompting import FilePrompt, PromptBuilder
from .summarizer import StructuralSummarizer, digest_for
from .urls import RepositoryRef, auth_headers, parse_repository_url, with_credentials
from .walker import RepositoryWalker

_FINISHED = object()

README_TEMPERATURE = 0.2
README_MAX_TOKENS = 10000


@dataclass(frozen=True)
class GenerationEvent:
    """One event of a documentation run: a chunk, a completion notice or an error."""

    path: str
    kind: str
    text: str

    def as_dict(self) -> Dict[str, str]:
        if self.kind == "chunk":
            return {"path": self.path, "type": "chunk", "text": self.text}
        return {"path": self.path, "type": self.kind, "message": self.text}


class DocumentationRun:
    """Generates documentation for several files concurrently.

    Each file owns its own :class:`GenerationStream`; events from all files
    are merged through a queue in arrival order. A run can be consumed once.
    """

    def __init__(
        self,
        prompts: List[FilePrompt],
        runner: LLMRunner,
        *,
        extraction: ExtractionResult | None = None,
        max_workers: int = 4,
    ) -> None:
        self.prompts = prompts
        self.extraction = extraction
        self.max_workers = max(1, max_workers)
        self.streams: Dict[str, GenerationStream] = {
            item.path: runner.stream(item.prompt) for item in prompts
        }
        self.logger = get_logger("orchestrator")
        self._started = False
        self._lock = threading.Lock()

    @property
    def paths(self) -> List[str]:
        return list(self.streams)

    def cancel(self, path: str) -> None:
        """Stop generation for ``path`` without touching other files."""
        stream = self.streams.get(path)
        if stream is None:
            raise KeyError(path)
        stream.cancel()

    def cancel_all(self) -> None:
        for stream in self.streams.values():
            stream.cancel()

    def events(self) -> Iterator[GenerationEvent]:
        with self._lock:
            if self._started:
                raise RuntimeError("DocumentationRun can only be consumed once")
            self._started = True
        return self._events()

    def collect(self) -> Dict[str, str]:
        """Consume the run and return the generated text keyed by path."""
        documentation: Dict[str, str] = {path: "" for path in self.streams}
        for event in self.events():
            if event.kind == "chunk":
                documentation[event.path] += event.text
        return documentation

    def _events(self) -> Iterator[GenerationEvent]:
        if not self.streams:
            return
        events: "queue.Queue[object]" = queue.Queue()
        workers = min(self.max_workers, len(self.streams))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="repodoc-gen")
        try:
            for path, stream in self.streams.items():
                executor.submit(self._pump, path, stream, events)
            remaining = len(self.streams)
            while remaining:
                item = events.get()
                if item is _FINISHED:
                    remaining -= 1
                    continue
                assert isinstance(item, GenerationEvent)
                yield item
        finally:
            self.cancel_all()
            executor.shutdown(wait=False)

    def _pump(self, path: str, stream: GenerationStream, events: "queue.Queue[object]") -> None:
        try:
            for fragment in stream:
                events.put(GenerationEvent(path=path, kind="chunk", text=fragment))
            status = "cancelled" if stream.cancelled else "done"
            events.put(GenerationEvent(path=path, kind="info", text=status))
        except Exception as exc:
            self.logger.warning("Generation failed for %s: %s", path, exc)
            events.put(GenerationEvent(path=path, kind="error", text=str(exc)))
        finally:
            events.put(_FINISHED)


class Orchestrator:
    """Coordinates clone, walk, summarize, prompt and generation steps."""

    def __init__(
        self,
        config: RepoDocConfig | None = None,
        *,
        git_client: GitClient | None = None,
        workspace: Workspace | None = None,
        walker: RepositoryWalker | None = None,
        summarizer: StructuralSummarizer | None = None,
        prompt_builder: PromptBuilder | None = None,
        llm_runner: LLMRunner | None = None,
    ) -> None:
        self.config = config
        timeout = config.workspace.clone_timeout if config is not None else 120.0
        self.git_client = git_client or GitClient(timeout=timeout)
        self.workspace = workspace or Workspace(
            self.git_client,
            temp_root=config.workspace.temp_dir if config is not None else None,
        )
        if walker is None and config is not None:
            walker = RepositoryWalker(
                config.extraction.policy(), max_files=config.extraction.max_files
            )
        self.walker = walker or RepositoryWalker()
        self.summarizer = summarizer or StructuralSummarizer()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._llm_runner = llm_runner
        self.logger = get_logger("orchestrator")

    def extract(
        self,
        url: str,
        *,
        token: str | None = None,
        headers: Mapping[str, str] | None = None,
        max_files: int | None = None,
    ) -> ExtractionResult:
        """Clone ``url``, walk its head commit and return the structure and files."""
        ref = parse_repository_url(url)
        walker = self.walker
        if max_files is not None and max_files != walker.max_files:
            walker = RepositoryWalker(walker.policy, max_files=max_files)
        clone_url = with_credentials(url, token)
        request_headers = _request_headers(token, headers)
        self.logger.info("Extracting %s", ref.full_name)
        with self.workspace.checkout(clone_url, headers=request_headers) as checkout:
            result = walker.walk(checkout.tree_source(self.git_client), checkout.commit)
        self.logger.info(
            "Extracted %d files from %s at %s",
            len(result.file_contents),
            ref.full_name,
            result.commit,
        )
        return result

    def prepare(self, repository: RepositoryRef | str, result: ExtractionResult) -> List[FilePrompt]:
        """Build one prompt per extracted file, preferring structural digests."""
        name = repository.full_name if isinstance(repository, RepositoryRef) else repository
        prompts: List[FilePrompt] = []
        for path, extracted in result.file_contents.items():
            digest = digest_for(extracted, self.summarizer)
            prompts.append(
                self.prompt_builder.for_file(
                    name, path, result.structure, extracted.content, digest
                )
            )
            self.logger.debug(
                "Prepared prompt for %s (%s)", path, "digest" if digest else "raw content"
            )
        return prompts

    def generate(
        self,
        url: str,
        *,
        token: str | None = None,
        headers: Mapping[str, str] | None = None,
        max_files: int | None = None,
        max_workers: int = 4,
    ) -> DocumentationRun:
        """Extract ``url`` and return a run that streams documentation per file."""
        ref = parse_repository_url(url)
        result = self.extract(url, token=token, headers=headers, max_files=max_files)
        prompts = self.prepare(ref, result)
        return DocumentationRun(
            prompts, self.llm_runner(), extraction=result, max_workers=max_workers
        )

    def document(
        self,
        url: str,
        *,
        token: str | None = None,
        headers: Mapping[str, str] | None = None,
        max_files: int | None = None,
        generated_at: Optional[datetime] = None,
    ) -> str:
        """Generate and format the combined documentation for ``url``."""
        run = self.generate(url, token=token, headers=headers, max_files=max_files)
        return format_documentation(run.collect(), generated_at)

    def readme(
        self,
        url: str,
        *,
        token: str | None = None,
        headers: Mapping[str, str] | None = None,
        max_files: int | None = None,
    ) -> GenerationStream:
        """Extract ``url`` and return a lazy stream of a README for the whole repository."""
        ref = parse_repository_url(url)
        result = self.extract(url, token=token, headers=headers, max_files=max_files)
        prompt = self.prompt_builder.for_repository(
            ref.full_name,
            result.structure,
            {path: item.content for path, item in result.file_contents.items()},
        )
        runner = self.llm_runner()
        options = replace(
            runner.options, temperature=README_TEMPERATURE, max_tokens=README_MAX_TOKENS
        )
        self.logger.info(
            "Generating README for %s from %d files", ref.full_name, len(result.file_contents)
        )
        return runner.stream(prompt, options=options)

    def llm_runner(self) -> LLMRunner:
        if self._llm_runner is None:
            llm_cfg = self.config.llm if self.config is not None else None
            self._llm_runner = build_llm_runner(llm_cfg or LLMConfig())
        return self._llm_runner


def _request_headers(token: str | None, headers: Mapping[str, str] | None) -> Dict[str, str]:
    """Bearer header for ``token`` plus ``headers``; an explicit Authorization wins."""
    merged = dict(headers or {})
    if any(name.lower() == "authorization" for name in merged):
        return merged
    return {**auth_headers(token), **merged}


def build_llm_runner(llm_cfg: LLMConfig) -> LLMRunner:
    """Create a runner from configuration, leaving unset values to the environment."""
    defaults = GenerationOptions()
    options = GenerationOptions(
        temperature=llm_cfg.temperature if llm_cfg.temperature is not None else defaults.temperature,
        top_p=llm_cfg.top_p if llm_cfg.top_p is not None else defaults.top_p,
        max_tokens=llm_cfg.max_tokens,
        chunk_delay=llm_cfg.chunk_delay if llm_cfg.chunk_delay is not None else defaults.chunk_delay,
    )
    kwargs: Dict[str, object] = {"options": options}
    if llm_cfg.request_timeout is not None:
        kwargs["request_timeout"] = llm_cfg.request_timeout
    if llm_cfg.api_key:
        kwargs["api_key"] = llm_cfg.api_key
    runner_kind = (llm_cfg.runner or "").lower()
    if runner_kind in {"cli", "ollama"}:
        kwargs["base_url"] = None
    elif llm_cfg.base_url:
        kwargs["base_url"] = llm_cfg.base_url
    return LLMRunner(llm_cfg.model, **kwargs)  # type: ignore[arg-type]


__all__ = [
    "README_MAX_TOKENS",
    "README_TEMPERATURE",
    "DocumentationRun",
    "GenerationEvent",
    "Orchestrator",
    "build_llm_runner",
]
