"""Pytest configuration and fixtures."""

import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rina.errors import ProviderError  # noqa: E402
from rina.llm import TextChoice  # noqa: E402
from rina.models import ChannelType, Message, Source  # noqa: E402

VOCABULARY = ["cat", "dog", "python", "rust", "solana", "pizza"]


class FakeEmbedder:
    """Deterministic bag-of-words embedder over a tiny vocabulary."""

    def __init__(self):
        self.fail = False
        self.short = False
        self.calls: list[list[str]] = []

    async def embed(self, texts):
        texts = list(texts)
        self.calls.append(texts)
        if self.fail:
            raise ProviderError("embedding service unavailable")

        vectors = []
        for text in texts:
            words = re.findall(r"[a-z]+", text.lower())
            vector = [float(words.count(term)) for term in VOCABULARY]
            vector.append(0.1)
            vectors.append(vector)

        if self.short:
            return vectors[:-1]
        return vectors


@pytest.fixture
def fake_embedder():
    """Create fake embedder."""
    return FakeEmbedder()


@pytest_asyncio.fixture
async def knowledge(fake_embedder):
    """Create in-memory knowledge store for testing."""
    from rina.knowledge import KnowledgeStore

    store = KnowledgeStore(fake_embedder, ":memory:")
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def mock_completer():
    """Create mock completion provider."""
    completer = Mock()
    completer.complete = AsyncMock(return_value=TextChoice(text="[IGNORE]"))
    return completer


@pytest.fixture
def attention_config():
    """Create default attention config."""
    from rina.models import AttentionConfig

    return AttentionConfig()


@pytest.fixture
def attention(attention_config, mock_completer):
    """Create Attention engine with mock completer."""
    from rina.attention import Attention

    return Attention(attention_config, mock_completer)


@pytest.fixture
def make_message():
    """Factory for Discord text-channel messages with increasing timestamps."""
    base = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(content: str, **overrides) -> Message:
        counter["n"] += 1
        fields = {
            "id": f"msg{counter['n']}",
            "source": Source.DISCORD,
            "source_id": "user1",
            "channel_type": ChannelType.TEXT,
            "channel_id": "chan1",
            "account_id": "user1",
            "content": content,
            "created_at": base + timedelta(seconds=counter["n"]),
        }
        fields.update(overrides)
        return Message(**fields)

    return _make
