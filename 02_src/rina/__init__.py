"""Rina: attention engine and conversation knowledge store."""

from .agent import Agent, Character, IAgent
from .app import Application, IApplication
from .attention import Attention, IAttention
from .dialogue import IMessageHandler, MessageHandler
from .errors import (
    ConversionError,
    EmbeddingError,
    ProviderError,
    RinaError,
    StorageError,
)
from .knowledge import IKnowledgeStore, KnowledgeStore, VectorIndex
from .llm import (
    Choice,
    ICompleter,
    IEmbedder,
    LLMProvider,
    OpenAIEmbedder,
    TextChoice,
    ToolCallChoice,
)
from .loaders import DocumentLoader
from .models import (
    Account,
    AttentionCommand,
    AttentionConfig,
    AttentionContext,
    Channel,
    ChannelType,
    Document,
    EngagementDecision,
    HandleResult,
    Message,
    SearchResult,
    Source,
)

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Source",
    "ChannelType",
    "Message",
    "Document",
    "SearchResult",
    "Channel",
    "Account",
    "AttentionCommand",
    "AttentionConfig",
    "AttentionContext",
    "HandleResult",
    "EngagementDecision",
    # Errors
    "RinaError",
    "StorageError",
    "ConversionError",
    "EmbeddingError",
    "ProviderError",
    # Components
    "ICompleter",
    "IEmbedder",
    "Choice",
    "TextChoice",
    "ToolCallChoice",
    "LLMProvider",
    "OpenAIEmbedder",
    "IKnowledgeStore",
    "KnowledgeStore",
    "VectorIndex",
    "IAttention",
    "Attention",
    "IAgent",
    "Agent",
    "Character",
    "IMessageHandler",
    "MessageHandler",
    "DocumentLoader",
]
