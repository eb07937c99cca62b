"""Tests for the streaming generation runner."""

from __future__ import annotations

import io
import json
import subprocess

import pytest

from repodoc.errors import GenerationError
from repodoc.llm import GenerationOptions, GenerationStream, LLMRequest, LLMRunner


def test_stream_constructs_request_lazily() -> None:
    captured = {}

    def fake_runner(request):
        captured.update(
            prompt=request.prompt,
            system=request.system,
            model=request.model,
            temperature=request.temperature,
            top_p=request.top_p,
            max_tokens=request.max_tokens,
            base_url=request.base_url,
            request_timeout=request.request_timeout,
        )
        yield "hello "
        yield "world\n"

    runner = LLMRunner(
        model="custom-model",
        base_url=None,
        api_key=None,
        request_timeout=42.0,
        runner=fake_runner,
    )
    stream = runner.stream(
        "Document this",
        system="be brief",
        options=GenerationOptions(temperature=0.1, top_p=0.5, max_tokens=64, chunk_delay=0),
    )

    assert captured == {}
    assert list(stream) == ["hello world\n"]
    assert captured == {
        "prompt": "Document this",
        "system": "be brief",
        "model": "custom-model",
        "temperature": 0.1,
        "top_p": 0.5,
        "max_tokens": 64,
        "base_url": None,
        "request_timeout": 42.0,
    }


def test_default_options_match_generation_defaults() -> None:
    options = GenerationOptions()
    assert (options.temperature, options.top_p, options.max_tokens, options.chunk_delay) == (
        0.5,
        0.95,
        None,
        0.03,
    )


def test_run_joins_fragments() -> None:
    runner = LLMRunner(model="m", base_url=None, runner=lambda request: iter(["a", "b\n", "c"]))
    assert runner.run("prompt") == "ab\nc"


def test_stream_rechunks_by_line_with_delay() -> None:
    sleeps = []
    stream = GenerationStream(
        ["# Ti", "tle\nBody ", "line\nTail"], chunk_delay=0.03, sleep=sleeps.append
    )

    assert list(stream) == ["# Title\n", "Body line\n", "Tail"]
    assert sleeps == [0.03, 0.03]


def test_stream_is_not_restartable() -> None:
    stream = GenerationStream(["a\n"])
    assert list(stream) == ["a\n"]
    with pytest.raises(RuntimeError):
        iter(stream)


def test_cancel_stops_cleanly_and_closes_source() -> None:
    closed = []

    def fragments():
        try:
            for index in range(100):
                yield f"line {index}\n"
        finally:
            closed.append(True)

    stream = GenerationStream(fragments())
    delivered = []
    for chunk in stream:
        delivered.append(chunk)
        if len(delivered) == 2:
            stream.cancel()

    assert delivered == ["line 0\n", "line 1\n"]
    assert stream.cancelled is True
    assert closed == [True]


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OLLAMA_MODEL", "env-model")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://localhost:11434/v1/")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.delenv("REPODOC_LLM_MODEL", raising=False)
    monkeypatch.delenv("REPODOC_LLM_BASE_URL", raising=False)
    monkeypatch.delenv("REPODOC_LLM_API_KEY", raising=False)

    runner = LLMRunner()

    assert runner.model == "env-model"
    assert runner.base_url == "http://localhost:11434/v1"
    assert runner.api_key == "sk-env"


def test_cli_runner_selected_without_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in LLMRunner.ENV_BASE_URL_KEYS:
        monkeypatch.delenv(key, raising=False)
    runner = LLMRunner(model="m")
    assert runner.base_url is None
    assert runner._runner == LLMRunner._cli_runner


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False


def test_http_runner_streams_server_sent_events(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}
    events = [
        {"choices": [{"delta": {"role": "assistant"}}]},
        {"choices": [{"delta": {"content": "# Doc"}}]},
        {"choices": [{"delta": {"content": "s\nMore"}}]},
    ]
    body = "".join(f"data: {json.dumps(event)}\n\n" for event in events) + "data: [DONE]\n\n"

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["headers"] = dict(request.header_items())
        captured["timeout"] = timeout
        return _FakeResponse(body.encode("utf-8"))

    monkeypatch.setattr("repodoc.llm.runner.urlopen", fake_urlopen)

    runner = LLMRunner(
        model="qwen",
        base_url="http://localhost:11434/v1",
        api_key="secret",
        request_timeout=5.0,
        options=GenerationOptions(chunk_delay=0),
    )
    chunks = list(runner.stream("Explain"))

    assert chunks == ["# Docs\n", "More"]
    assert captured["url"] == "http://localhost:11434/v1/chat/completions"
    assert captured["payload"]["stream"] is True
    assert captured["payload"]["model"] == "qwen"
    assert captured["payload"]["temperature"] == 0.5
    assert captured["payload"]["top_p"] == 0.95
    assert "max_tokens" not in captured["payload"]
    assert captured["payload"]["messages"] == [{"role": "user", "content": "Explain"}]
    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert captured["timeout"] == 5.0


def test_http_runner_rejects_invalid_event_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "repodoc.llm.runner.urlopen",
        lambda request, timeout=None: _FakeResponse(b"data: {not json}\n\n"),
    )
    runner = LLMRunner(model="m", base_url="http://localhost:1/v1", api_key=None)

    with pytest.raises(GenerationError):
        list(runner.stream("x"))


class _FakeProcess:
    def __init__(self, args, *, stdout, stderr, text, encoding) -> None:
        self.args = args
        self.stderr_target = stderr
        self.stdout = io.StringIO("pulling manifest\nfirst line\n")
        stderr.write(b"progress " * 20000 + b"\nError: model 'm' not found\n")
        self.killed = False

    def kill(self) -> None:
        self.killed = True

    def wait(self) -> int:
        return 1


def test_cli_runner_spools_stderr_and_reports_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    processes = []

    def fake_popen(args, **kwargs):
        process = _FakeProcess(args, **kwargs)
        processes.append(process)
        return process

    monkeypatch.setattr("repodoc.llm.runner.subprocess.Popen", fake_popen)
    request = LLMRequest(
        prompt="Document this",
        system=None,
        model="m",
        temperature=None,
        top_p=None,
        max_tokens=None,
        executable="ollama",
        base_url=None,
        api_key=None,
        request_timeout=None,
    )

    lines = []
    with pytest.raises(GenerationError, match="model 'm' not found"):
        for line in LLMRunner._cli_runner(request):
            lines.append(line)

    assert lines == ["pulling manifest\n", "first line\n"]
    (process,) = processes
    assert process.args == ["ollama", "run", "m", "Document this"]
    assert process.stderr_target is not subprocess.PIPE
    assert process.killed is False
