"""Structural digests of TypeScript and JavaScript sources."""

from __future__ import annotations

from typing import Optional

from ..errors import SummarizationError
from ..logging import get_logger
from ..models import ExtractedFile
from .nodes import (
    ExportedElement,
    ImportedElement,
    LogicKind,
    LogicNode,
    NodeKind,
    Parameter,
    Signature,
    StructuralNode,
    render_digest,
)
from .parser import ParserPool, grammar_for, is_parseable
from .structure import StructuralSummarizer

_logger = get_logger("summarizer")


def digest_for(
    file: ExtractedFile, summarizer: StructuralSummarizer | None = None
) -> Optional[str]:
    """Return the rendered digest of ``file`` or None when raw content should be used."""
    if not is_parseable(file.path):
        return None
    summarizer = summarizer or StructuralSummarizer()
    try:
        module = summarizer.summarize(file.source, file.path)
    except SummarizationError as exc:
        _logger.warning("Falling back to raw content for %s: %s", file.path, exc)
        return None
    if not module.children:
        return None
    return render_digest(module)


__all__ = [
    "ExportedElement",
    "ImportedElement",
    "LogicKind",
    "LogicNode",
    "NodeKind",
    "Parameter",
    "ParserPool",
    "Signature",
    "StructuralNode",
    "StructuralSummarizer",
    "digest_for",
    "grammar_for",
    "is_parseable",
    "render_digest",
]
