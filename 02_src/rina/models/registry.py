"""Channel and account directory models."""

from dataclasses import dataclass
from datetime import datetime

from .messages import ChannelType, Source


@dataclass
class Channel:
    """Directory entry for a conversation surface."""

    id: int
    channel_id: str
    channel_type: ChannelType
    source: Source | None
    name: str | None
    created_at: datetime
    updated_at: datetime


@dataclass
class Account:
    """Directory entry for a platform identity."""

    id: int
    name: str
    source_id: str
    source: Source
    created_at: datetime
    updated_at: datetime
