"""Final markdown assembly for generated per-file documentation."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Mapping, Optional

from .toc import TableOfContentsBuilder

THINKING_SEPARATOR = "</think>"
_SECTION_RULE = "\n\n---\n\n"


def strip_reasoning(response: str) -> str:
    """Drop a model's reasoning preamble, keeping the text after ``</think>``."""
    index = response.find(THINKING_SEPARATOR)
    if index < 0:
        return response
    return response[index + len(THINKING_SEPARATOR) :].strip()


def format_sections(documentation: Mapping[str, str]) -> str:
    """Render each file's documentation under its path, in the given order."""
    parts = [
        f"### *{path}*\n{strip_reasoning(text)}{_SECTION_RULE}"
        for path, text in documentation.items()
    ]
    return "".join(parts)


def format_documentation(
    documentation: Mapping[str, str],
    generated_at: Optional[datetime] = None,
    *,
    toc: TableOfContentsBuilder | None = None,
) -> str:
    """Combine per-file documentation into one markdown document.

    Paths are sorted, listed in a table of contents and rendered one
    section each with reasoning preambles removed.
    """
    moment = generated_at or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    timestamp = format_datetime(moment.astimezone(timezone.utc), usegmt=True)
    ordered = {path: documentation[path] for path in sorted(documentation)}
    builder = toc or TableOfContentsBuilder()

    output = f"# Project Documentation - {timestamp}\n\n"
    contents = builder.build(ordered)
    if contents:
        output += f"{contents}\n\n"
    output += _SECTION_RULE.lstrip("\n")
    output += format_sections(ordered)
    return output


__all__ = ["THINKING_SEPARATOR", "format_documentation", "format_sections", "strip_reasoning"]
