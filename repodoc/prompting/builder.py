"""Builds per-file documentation prompts from the jinja2 templates."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping

from jinja2 import Environment, FileSystemLoader

from .constants import DOC_SECTIONS, SECTION_POINTS, SECTION_TITLES, SOURCE_SECTIONS


@dataclass(frozen=True)
class FilePrompt:
    """The prompt generated for one extracted file."""

    path: str
    prompt: str
    uses_digest: bool


class PromptBuilder:
    """Renders the per-file documentation prompts and the repository README prompt."""

    TEMPLATE_NAME = "file_doc.md.j2"
    README_TEMPLATE_NAME = "readme.md.j2"

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def build(
        self,
        repository: str,
        path: str,
        structure: str,
        code: str,
        *,
        is_digest: bool = False,
    ) -> str:
        template = self._env.get_template(self.TEMPLATE_NAME)
        return (
            template.render(
                repository=repository,
                path=path,
                structure=structure.rstrip("\n"),
                code=code,
                is_digest=is_digest,
                sections=self._sections(DOC_SECTIONS),
                source_sections=self._sections(SOURCE_SECTIONS),
            ).strip()
            + "\n"
        )

    def for_file(
        self,
        repository: str,
        path: str,
        structure: str,
        content: str,
        digest: str | None = None,
    ) -> FilePrompt:
        """Prefer the structural digest and fall back to the fenced content."""
        code = digest if digest else content
        prompt = self.build(repository, path, structure, code, is_digest=bool(digest))
        return FilePrompt(path=path, prompt=prompt, uses_digest=bool(digest))

    def for_repository(
        self, repository: str, structure: str, files: Mapping[str, str]
    ) -> str:
        """Render the README prompt: the structure followed by every file under a banner."""
        template = self._env.get_template(self.README_TEMPLATE_NAME)
        return (
            template.render(
                repository=repository,
                structure=structure.rstrip("\n"),
                files=list(files.items()),
            ).strip()
            + "\n"
        )

    @staticmethod
    def _sections(names: tuple[str, ...]) -> List[Dict[str, object]]:
        return [
            {"name": name, "title": SECTION_TITLES[name], "points": SECTION_POINTS[name]}
            for name in names
        ]

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["FilePrompt", "PromptBuilder"]
