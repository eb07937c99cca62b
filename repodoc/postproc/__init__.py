"""Post-processing of generated documentation."""

from .formatter import format_documentation, format_sections, strip_reasoning
from .toc import TableOfContentsBuilder, anchor_for

__all__ = [
    "TableOfContentsBuilder",
    "anchor_for",
    "format_documentation",
    "format_sections",
    "strip_reasoning",
]
