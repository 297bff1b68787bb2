"""MessageHandler implementation."""

import asyncio
from typing import Iterable, Protocol

from ..agent import IAgent
from ..attention import IAttention
from ..errors import EmbeddingError, ProviderError
from ..knowledge import IKnowledgeStore
from ..logging_config import get_logger
from ..models import (
    AttentionCommand,
    AttentionConfig,
    AttentionContext,
    EngagementDecision,
    HandleResult,
    Message,
)

logger = get_logger(__name__)


class IMessageHandler(Protocol):
    """Per-event pipeline shared by all transports."""

    async def handle(
        self,
        message: Message,
        mentioned_names: Iterable[str] = (),
        author_name: str | None = None,
    ) -> HandleResult:
        """Persist a message, decide whether to respond, and generate the reply."""
        ...

    async def engage(self, content: str) -> EngagementDecision:
        """Run the like / retweet / quote gates for a post."""
        ...


class MessageHandler:
    """Runs one inbound event through store, attention and agent."""

    def __init__(
        self,
        agent: IAgent,
        attention: IAttention,
        knowledge: IKnowledgeStore,
        config: AttentionConfig,
    ):
        self._agent = agent
        self._attention = attention
        self._knowledge = knowledge
        self._config = config
        self._running = False

    async def start(self) -> None:
        """Start accepting events."""
        logger.info("Starting MessageHandler")
        self._running = True

    async def stop(self) -> None:
        """Stop accepting events."""
        logger.info("Stopping MessageHandler")
        self._running = False

    async def handle(
        self,
        message: Message,
        mentioned_names: Iterable[str] = (),
        author_name: str | None = None,
    ) -> HandleResult:
        """Persist a message, decide whether to respond, and generate the reply.

        Store failures are logged and re-raised: the caller drops the event.
        Reply generation failures are logged and yield a result without reply.
        """
        if not self._running:
            raise RuntimeError("MessageHandler not started")

        logger.info(
            "Message received from %s in %s: %s",
            message.source_id,
            message.channel_id,
            message.content[:100],
        )

        try:
            await self._knowledge.create_message(message)
            await self._knowledge.create_user(
                name=author_name or message.source_id,
                source=message.source,
                source_id=message.source_id,
            )
            # Newest first from the store; the engine expects oldest first
            history = await self._knowledge.channel_messages(
                message.channel_id, self._config.max_history_messages
            )
        except Exception:
            logger.error(
                "Failed to record message %s, dropping event",
                message.id,
                exc_info=True,
            )
            raise
        history.reverse()
        logger.debug("Retrieved %s history messages", len(history))

        context = AttentionContext(
            message_content=message.content,
            channel_type=message.channel_type,
            source=message.source,
            mentioned_names=set(mentioned_names),
            history=history,
        )

        command = await self._attention.should_reply(context)
        logger.info(
            "Attention decision for message %s: %s",
            message.id,
            command.value,
            extra={"context": {"channel_id": message.channel_id, "command": command.value}},
        )

        if command != AttentionCommand.RESPOND:
            return HandleResult(command=command)

        try:
            reply = await self._agent.generate_reply(message.content, history)
        except (ProviderError, EmbeddingError):
            logger.error("Failed to generate response for %s", message.id, exc_info=True)
            return HandleResult(command=command)

        logger.debug("Generated response: %s", reply[:100])
        return HandleResult(command=command, reply=reply)

    async def engage(self, content: str) -> EngagementDecision:
        """Run the like / retweet / quote gates for a post."""
        like, retweet, quote = await asyncio.gather(
            self._attention.should_like(content),
            self._attention.should_retweet(content),
            self._attention.should_quote(content),
        )
        return EngagementDecision(like=like, retweet=retweet, quote=quote)
