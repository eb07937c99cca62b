"""Adapters around streaming text-generation backends (OpenAI-compatible HTTP / Ollama)."""

from __future__ import annotations

import json
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import GenerationError
from ..logging import get_logger
from .stream import GenerationOptions, GenerationStream

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()

_logger = get_logger("llm")


@dataclass
class LLMRequest:
    """Represents one streaming inference request."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    top_p: Optional[float]
    max_tokens: Optional[int]
    executable: Optional[str]
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]


Runner = Callable[[LLMRequest], Iterable[str]]


class LLMRunner:
    """Streams prompts through the configured generation backend."""

    DEFAULT_MODEL = "llama3.2"
    ENV_MODEL_KEYS = ("REPODOC_LLM_MODEL", "OLLAMA_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("REPODOC_LLM_BASE_URL", "OLLAMA_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("REPODOC_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None | object = _AUTO_BASE_URL,
        executable: str = "ollama",
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 60.0,
        options: GenerationOptions | None = None,
        runner: Runner | None = None,
    ) -> None:
        self.model = self._resolve_model(model)
        self.base_url = self._resolve_base_url(base_url)
        self.executable = executable
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self.options = options or GenerationOptions()
        if runner is not None:
            self._runner = runner
        else:
            self._runner = self._http_runner if self.base_url else self._cli_runner

    def stream(
        self,
        prompt: str,
        *,
        system: str | None = None,
        options: GenerationOptions | None = None,
    ) -> GenerationStream:
        """Return a lazy stream of line-sized fragments for ``prompt``.

        Nothing is sent to the backend until the stream is iterated.
        """
        effective = options or self.options
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=effective.temperature,
            top_p=effective.top_p,
            max_tokens=effective.max_tokens,
            executable=self.executable,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        return GenerationStream(self._lazy(request), chunk_delay=effective.chunk_delay)

    def run(self, prompt: str, *, system: str | None = None) -> str:
        """Generate a full response without pacing."""
        options = GenerationOptions(
            temperature=self.options.temperature,
            top_p=self.options.top_p,
            max_tokens=self.options.max_tokens,
            chunk_delay=0.0,
        )
        return self.stream(prompt, system=system, options=options).text().strip()

    def _lazy(self, request: LLMRequest) -> Iterator[str]:
        _logger.debug("Starting generation with %s", request.model)
        yield from self._runner(request)

    @staticmethod
    def _cli_runner(request: LLMRequest) -> Iterator[str]:
        args = [request.executable or "ollama", "run", request.model]
        prompt = request.prompt
        if request.system:
            prompt = f"{request.system.strip()}\n\n{prompt}"
        args.append(prompt)
        # Only stdout is piped; stderr is spooled to a file and read back on failure.
        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(
                    args,
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                    text=True,
                    encoding="utf-8",
                )
            except FileNotFoundError as exc:  # pragma: no cover - depends on environment
                raise GenerationError(
                    f"Unable to locate '{request.executable}'. Install Ollama or provide a custom runner."
                ) from exc

            assert process.stdout is not None
            completed = False
            try:
                for line in process.stdout:
                    yield line
                completed = True
            finally:
                if not completed:
                    process.kill()
                process.stdout.close()
                returncode = process.wait()
            if returncode != 0:
                stderr_file.seek(0)
                stderr = stderr_file.read().decode("utf-8", errors="replace")
                raise GenerationError(
                    f"LLM runner failed with exit code {returncode}: {stderr.strip()}"
                )

    @staticmethod
    def _http_runner(request: LLMRequest) -> Iterator[str]:
        if not request.base_url:
            raise GenerationError("HTTP runner requires a base_url to be configured.")
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
            "stream": True,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 60.0

        try:
            response = urlopen(http_request, timeout=timeout)
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            detail = exc.read().decode("utf-8", errors="ignore")
            message = detail.strip() or exc.reason
            raise GenerationError(
                f"LLM HTTP runner failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:  # pragma: no cover - depends on runtime
            raise GenerationError(f"LLM HTTP runner failed: {exc.reason}") from exc

        with response:
            yield from LLMRunner._iter_sse(response)

    @staticmethod
    def _iter_sse(lines: Iterable[bytes]) -> Iterator[str]:
        """Yield content deltas from an OpenAI-style server-sent event stream."""
        for raw in lines:
            line = raw.decode("utf-8", errors="replace").strip()
            if not line or not line.startswith("data:"):
                continue
            body = line[len("data:"):].strip()
            if body == "[DONE]":
                return
            try:
                event = json.loads(body)
            except json.JSONDecodeError as exc:
                raise GenerationError("LLM HTTP runner returned invalid JSON") from exc
            content = LLMRunner._extract_delta(event)
            if content:
                yield content

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_delta(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        for key in ("delta", "message"):
            part = first.get(key)
            if isinstance(part, dict):
                content = part.get("content")
                if isinstance(content, str):
                    return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_model(self, model: str | None) -> str:
        if model:
            return model
        env_value = self._first_env_value(self.ENV_MODEL_KEYS)
        if env_value:
            return env_value
        return self.DEFAULT_MODEL

    def _resolve_base_url(self, base_url: str | None | object) -> str | None:
        if base_url is None:
            return None
        if base_url is not _AUTO_BASE_URL:
            return str(base_url).rstrip("/") or None
        env_value = self._first_env_value(self.ENV_BASE_URL_KEYS)
        if env_value:
            return env_value.rstrip("/")
        return None

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["LLMRequest", "LLMRunner", "Runner"]
