"""LLM module."""

from .embedder import IEmbedder, OpenAIEmbedder
from .llm_provider import Choice, ICompleter, LLMProvider, TextChoice, ToolCallChoice

__all__ = [
    "Choice",
    "ICompleter",
    "IEmbedder",
    "LLMProvider",
    "OpenAIEmbedder",
    "TextChoice",
    "ToolCallChoice",
]
