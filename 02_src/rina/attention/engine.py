"""Attention engine: decides whether the agent reacts to a message."""

from typing import Protocol

from ..llm import Choice, ICompleter, TextChoice
from ..logging_config import get_logger
from ..models import AttentionCommand, AttentionConfig, AttentionContext, ChannelType
from .prompts import ATTENTION_PROMPT, LIKE_PROMPT, QUOTE_PROMPT, RETWEET_PROMPT, format_history

logger = get_logger(__name__)

MIN_CONTENT_LENGTH = 4


class IAttention(Protocol):
    """Per-message engagement policy."""

    async def should_reply(self, context: AttentionContext) -> AttentionCommand:
        """Classify a message as RESPOND, IGNORE or STOP."""
        ...

    async def should_like(self, content: str) -> bool:
        """Decide whether to like a post."""
        ...

    async def should_retweet(self, content: str) -> bool:
        """Decide whether to repost a post."""
        ...

    async def should_quote(self, content: str) -> bool:
        """Decide whether to quote a post."""
        ...


class Attention:
    """Layered attention policy.

    Layers run in order and the first match wins: direct messages, bot name
    mentions, stop phrases, trivially short messages, then the model. Holds
    no state between calls. Provider failures never escape: they degrade to
    IGNORE (should_reply) or False (engagement gates).
    """

    def __init__(self, config: AttentionConfig, completer: ICompleter):
        self._config = config
        self._completer = completer

    @property
    def config(self) -> AttentionConfig:
        return self._config

    async def should_reply(self, context: AttentionContext) -> AttentionCommand:
        """Classify a message as RESPOND, IGNORE or STOP."""
        content = context.message_content.lower()

        if context.channel_type == ChannelType.DIRECT_MESSAGE:
            return AttentionCommand.RESPOND

        for name in self._config.bot_names:
            mentioned = name in context.mentioned_names
            name_in_content = name.lower() in content

            logger.debug(
                "Checking bot name %s: mentioned=%s, in_content=%s",
                name,
                mentioned,
                name_in_content,
            )

            if mentioned or name_in_content:
                logger.debug("Bot name %s was mentioned, will reply", name)
                return AttentionCommand.RESPOND

        if any(phrase in content for phrase in self._config.stop_phrases):
            return AttentionCommand.STOP

        if len(content) < MIN_CONTENT_LENGTH:
            return AttentionCommand.IGNORE

        prompt = ATTENTION_PROMPT.format(
            respond_marker=self._config.respond_marker,
            ignore_marker=self._config.ignore_marker,
            stop_marker=self._config.stop_marker,
            history=format_history(context.history),
            message=context.message_content,
        )

        choice = await self._ask(prompt, "should_reply")
        if not isinstance(choice, TextChoice):
            return AttentionCommand.IGNORE

        if self._config.respond_marker in choice.text:
            command = AttentionCommand.RESPOND
        elif self._config.stop_marker in choice.text:
            command = AttentionCommand.STOP
        else:
            command = AttentionCommand.IGNORE

        logger.debug("Model classified message as %s", command.value)
        return command

    async def should_like(self, content: str) -> bool:
        """Decide whether to like a post."""
        return await self._gate(LIKE_PROMPT.format(content=content), "should_like")

    async def should_retweet(self, content: str) -> bool:
        """Decide whether to repost a post."""
        return await self._gate(RETWEET_PROMPT.format(content=content), "should_retweet")

    async def should_quote(self, content: str) -> bool:
        """Decide whether to quote a post."""
        return await self._gate(QUOTE_PROMPT.format(content=content), "should_quote")

    async def _gate(self, prompt: str, decision: str) -> bool:
        choice = await self._ask(prompt, decision)
        if not isinstance(choice, TextChoice):
            return False
        return choice.text.strip().lower() == "true"

    async def _ask(self, prompt: str, decision: str) -> Choice | None:
        """Call the completer; None on any provider failure."""
        try:
            return await self._completer.complete(prompt)
        except Exception as e:
            logger.warning(
                "Completion failed during %s, defaulting to no engagement: %s",
                decision,
                e,
            )
            return None
