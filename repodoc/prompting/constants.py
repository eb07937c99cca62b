"""Shared constants for per-file documentation prompts."""

from __future__ import annotations

DOC_SECTIONS: tuple[str, ...] = (
    "introduction",
    "overview",
    "usage",
    "exceptions",
    "troubleshooting",
    "security",
)

SOURCE_SECTIONS: tuple[str, ...] = ("api", "design")

SECTION_TITLES: dict[str, str] = {
    "introduction": "Introduction",
    "overview": "Code/Content Overview",
    "usage": "Usage Instructions",
    "exceptions": "Exceptions and Variations",
    "troubleshooting": "Troubleshooting",
    "security": "Security Considerations",
    "api": "API Documentation",
    "design": "Design Overview",
}

SECTION_POINTS: dict[str, tuple[str, ...]] = {
    "introduction": (
        "Purpose: what the file is for and why it matters to its users.",
        "Background: any context a reader needs first.",
    ),
    "overview": (
        "Description: a short summary of what the code or content does.",
        "Key features: the functionality it provides.",
    ),
    "usage": (
        "How to use: installation, configuration or invocation steps.",
        "Common variants and how they differ.",
    ),
    "exceptions": (
        "Special cases that apply to this file.",
        "Compatibility with other tools, platforms or systems.",
    ),
    "troubleshooting": (
        "Common issues users may hit.",
        "Steps that resolve each issue.",
    ),
    "security": (
        "Potential vulnerabilities or concerns.",
        "Likely bugs, with fixes only when certain.",
        "Mitigation strategies.",
    ),
    "api": (
        "Every exported function, class or endpoint.",
        "Parameters and inputs for each.",
        "Outputs and responses for each.",
    ),
    "design": (
        "How the pieces in this file interact with the rest of the codebase.",
        "Key components and their responsibilities.",
    ),
}


__all__ = ["DOC_SECTIONS", "SECTION_POINTS", "SECTION_TITLES", "SOURCE_SECTIONS"]
