"""Table-of-contents generation for the combined documentation."""

from __future__ import annotations

import re
from typing import Iterable, List


def anchor_for(path: str) -> str:
    """Return a lowercase anchor where every non-alphanumeric run becomes ``-``."""
    return re.sub(r"[^a-zA-Z0-9]+", "-", path).lower()


class TableOfContentsBuilder:
    """Builds a flat table of contents linking to one section per file."""

    HEADING = "## Table of Contents"

    def build(self, paths: Iterable[str]) -> str:
        entries: List[str] = [f"- [{path}](#{anchor_for(path)})" for path in paths]
        if not entries:
            return ""
        return "\n".join([self.HEADING, "", *entries])


__all__ = ["TableOfContentsBuilder", "anchor_for"]
