"""Results of handling inbound events."""

from dataclasses import dataclass

from .attention import AttentionCommand


@dataclass
class HandleResult:
    """Outcome of handling one inbound message."""

    command: AttentionCommand
    reply: str | None = None  # set only when command is RESPOND and generation succeeded


@dataclass
class EngagementDecision:
    """Social actions to take on a post."""

    like: bool
    retweet: bool
    quote: bool
