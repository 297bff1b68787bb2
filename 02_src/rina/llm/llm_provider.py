"""Completion provider implementation using Anthropic Claude API."""

import os
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

import anthropic

from ..errors import ProviderError


@dataclass(frozen=True)
class TextChoice:
    """Plain text returned by the model."""

    text: str


@dataclass(frozen=True)
class ToolCallChoice:
    """Structured tool invocation returned instead of text."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


Choice = Union[TextChoice, ToolCallChoice]


class ICompleter(Protocol):
    """Abstraction for completion model access."""

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> Choice:
        """Send a single prompt, return the model's choice. Raises ProviderError."""
        ...


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model or os.getenv("LLM_MODEL", "claude-3-5-sonnet-20241022")
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> Choice:
        """Generate completion using Claude API."""
        request: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        if system:
            request["system"] = system

        try:
            response = await self._client.messages.create(**request)
        except Exception as e:
            raise ProviderError(f"LLM API error: {e}") from e

        texts = []
        for block in response.content:
            if block.type == "tool_use":
                return ToolCallChoice(name=block.name, arguments=dict(block.input or {}))
            if block.type == "text":
                texts.append(block.text)

        return TextChoice(text="".join(texts))
