"""Streaming text-generation adapters."""

from .runner import LLMRequest, LLMRunner
from .stream import GenerationOptions, GenerationStream

__all__ = ["GenerationOptions", "GenerationStream", "LLMRequest", "LLMRunner"]
