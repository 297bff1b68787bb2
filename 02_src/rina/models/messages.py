"""Message-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from ..errors import ConversionError


class Source(str, Enum):
    """Platform a message originated from."""

    DISCORD = "discord"
    TELEGRAM = "telegram"
    GITHUB = "github"
    X = "x"
    TWITTER = "twitter"

    @classmethod
    def parse(cls, value: str) -> "Source":
        """Decode a stored source string (case-insensitive)."""
        try:
            return cls(value.lower())
        except (ValueError, AttributeError) as e:
            raise ConversionError(f"Invalid source: {value!r}") from e


class ChannelType(str, Enum):
    """Kind of conversation surface."""

    DIRECT_MESSAGE = "direct_message"
    TEXT = "text"
    VOICE = "voice"
    THREAD = "thread"

    @classmethod
    def parse(cls, value: str) -> "ChannelType":
        """Decode a stored channel type string (case-insensitive)."""
        try:
            return cls(value.lower())
        except (ValueError, AttributeError) as e:
            raise ConversionError(f"Invalid channel type: {value!r}") from e


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Message:
    """A single observed communication unit.

    Messages are append-only: created once per inbound event, never updated.
    Only ``content`` is embedded into the vector index.
    """

    id: str
    source: Source
    source_id: str
    channel_type: ChannelType
    channel_id: str
    account_id: str
    content: str
    role: str = "user"
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        self.created_at = _as_utc(self.created_at)


@dataclass
class Document:
    """Arbitrary retrievable text unit (e.g. an ingested reference file)."""

    id: str
    source_id: str
    content: str
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        self.created_at = _as_utc(self.created_at)


@dataclass(frozen=True)
class SearchResult:
    """A single nearest-neighbour hit from a vector index."""

    id: str
    content: str
    score: float
