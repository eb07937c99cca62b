"""Prompt construction for per-file documentation."""

from .builder import FilePrompt, PromptBuilder

__all__ = ["FilePrompt", "PromptBuilder"]
