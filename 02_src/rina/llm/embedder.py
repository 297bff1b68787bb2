"""Embedding provider implementation using the OpenAI embeddings API."""

import os
from typing import Protocol, Sequence

from openai import AsyncOpenAI

from ..errors import ProviderError
from ..logging_config import get_logger

logger = get_logger(__name__)


class IEmbedder(Protocol):
    """Abstraction for embedding model access."""

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts, one vector per input in the same order. Raises ProviderError."""
        ...


class OpenAIEmbedder:
    """OpenAI embeddings provider."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")

        self._model = model or os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
        self._client = AsyncOpenAI(api_key=self._api_key)

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts with a single API call."""
        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=list(texts),
            )
        except Exception as e:
            raise ProviderError(f"Embedding API error: {e}") from e

        # The API may return items out of order; index restores input order
        data = sorted(response.data, key=lambda item: item.index)
        logger.debug("Embedded %s texts with %s", len(data), self._model)
        return [list(item.embedding) for item in data]
