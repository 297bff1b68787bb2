"""Attention-related data models."""

from dataclasses import dataclass, field
from enum import Enum

from .messages import ChannelType, Source


class AttentionCommand(str, Enum):
    """Outcome of an attention decision."""

    RESPOND = "respond"
    IGNORE = "ignore"
    STOP = "stop"


DEFAULT_STOP_PHRASES = (
    "shut up",
    "stop",
    "please shut up",
    "shut up please",
    "dont talk",
    "silence",
    "stop talking",
    "be quiet",
    "hush",
    "wtf",
    "stfu",
    "stupid bot",
    "dumb bot",
    "stop responding",
    "can you not",
    "can you stop",
)


@dataclass
class AttentionContext:
    """Decision input for a single inbound message (never persisted)."""

    message_content: str
    channel_type: ChannelType
    source: Source
    mentioned_names: set[str] = field(default_factory=set)
    history: list[tuple[str, str]] = field(default_factory=list)  # (author_id, content), oldest first


@dataclass
class AttentionConfig:
    """Process-wide attention policy.

    reply_threshold and cooldown_messages are accepted but not read by the
    engine. max_history_messages bounds the history fetched by MessageHandler.
    """

    bot_names: list[str] = field(default_factory=lambda: ["shinobai", "shinobi"])
    reply_threshold: float = 0.6
    max_history_messages: int = 10
    cooldown_messages: int = 3
    stop_phrases: tuple[str, ...] = DEFAULT_STOP_PHRASES
    respond_marker: str = "[RESPOND]"
    ignore_marker: str = "[IGNORE]"
    stop_marker: str = "[STOP]"
