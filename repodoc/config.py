"""Configuration loading for repodoc (.repodoc.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .filters import DEFAULT_IGNORE_PATTERNS, SUPPORTED_EXTENSIONS, FilterPolicy
from .walker import DEFAULT_MAX_FILES

CONFIG_FILENAME = ".repodoc.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ExtractionConfig:
    """Walker limits and filter rules."""

    max_files: int = DEFAULT_MAX_FILES
    ignore_patterns: Optional[List[str]] = None
    extra_ignore_patterns: List[str] = field(default_factory=list)
    extensions: Optional[List[str]] = None

    def policy(self) -> FilterPolicy:
        return FilterPolicy.build(
            ignore_patterns=self.ignore_patterns,
            extra_ignore_patterns=self.extra_ignore_patterns,
            extensions=self.extensions,
        )


@dataclass
class WorkspaceConfig:
    """Where clones are created and how long git may run."""

    temp_dir: Optional[Path] = None
    clone_timeout: float = 120.0


@dataclass
class LLMConfig:
    """LLM runtime settings from .repodoc.yml."""

    runner: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    chunk_delay: Optional[float] = None
    request_timeout: Optional[float] = None


@dataclass
class RepoDocConfig:
    """Represents the settings defined in .repodoc.yml."""

    root: Path
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    llm: Optional[LLMConfig] = None


def load_config(config_path: Optional[Path] = None) -> RepoDocConfig:
    """Load configuration from ``config_path`` (a file or a directory).

    A missing file yields the defaults.
    """
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    if not config_file.exists():
        return RepoDocConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    extraction_data = _as_dict(data.get("extraction"))
    extraction = ExtractionConfig()
    if extraction_data:
        max_files = _as_int(extraction_data.get("max_files"))
        if max_files is not None:
            if max_files < 0:
                raise ConfigError("extraction.max_files must be zero or positive")
            extraction.max_files = max_files
        if "ignore_patterns" in extraction_data:
            extraction.ignore_patterns = _as_str_list(extraction_data.get("ignore_patterns"))
        extraction.extra_ignore_patterns = _as_str_list(
            extraction_data.get("extra_ignore_patterns")
        )
        if "extensions" in extraction_data:
            extraction.extensions = [
                ext if ext.startswith(".") else f".{ext}"
                for ext in _as_str_list(extraction_data.get("extensions"))
            ]

    workspace_data = _as_dict(data.get("workspace"))
    workspace = WorkspaceConfig()
    if workspace_data:
        temp_dir = _as_str(workspace_data.get("temp_dir"))
        if temp_dir:
            workspace.temp_dir = (root / Path(temp_dir).expanduser()).resolve()
        timeout = _as_float(workspace_data.get("clone_timeout"))
        if timeout is not None:
            workspace.clone_timeout = timeout

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            runner=_as_str(llm_data.get("runner")),
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            temperature=_as_float(llm_data.get("temperature")),
            top_p=_as_float(llm_data.get("top_p")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            chunk_delay=_as_float(llm_data.get("chunk_delay")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )
        if all(value is None for value in vars(llm).values()):
            llm = None

    return RepoDocConfig(root=root, extraction=extraction, workspace=workspace, llm=llm)


def default_ignore_patterns() -> List[str]:
    return list(DEFAULT_IGNORE_PATTERNS)


def default_extensions() -> List[str]:
    return sorted(SUPPORTED_EXTENSIONS)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ExtractionConfig",
    "LLMConfig",
    "RepoDocConfig",
    "WorkspaceConfig",
    "default_extensions",
    "default_ignore_patterns",
    "load_config",
]
