"""Core data models for Rina."""

from .messages import ChannelType, Document, Message, SearchResult, Source
from .registry import Account, Channel
from .attention import (
    DEFAULT_STOP_PHRASES,
    AttentionCommand,
    AttentionConfig,
    AttentionContext,
)
from .dialogue import EngagementDecision, HandleResult

__all__ = [
    # Messages
    "Source",
    "ChannelType",
    "Message",
    "Document",
    "SearchResult",
    # Registry
    "Channel",
    "Account",
    # Attention
    "AttentionCommand",
    "AttentionConfig",
    "AttentionContext",
    "DEFAULT_STOP_PHRASES",
    # Dialogue
    "HandleResult",
    "EngagementDecision",
]
