"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .agent import Agent, Character
from .attention import Attention, IAttention
from .config import load_attention_config, resolve_character_path, resolve_db_path
from .dialogue import IMessageHandler, MessageHandler
from .knowledge import IKnowledgeStore, KnowledgeStore
from .llm import ICompleter, IEmbedder, LLMProvider, OpenAIEmbedder
from .logging_config import get_logger
from .models import AttentionConfig

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    @property
    def knowledge(self) -> IKnowledgeStore:
        ...

    @property
    def handler(self) -> IMessageHandler:
        ...


class Application:
    """Main application bootstrap.

    Providers and the character may be injected; anything left out is built
    from the environment on start().
    """

    def __init__(
        self,
        db_path: str | None = None,
        completer: ICompleter | None = None,
        embedder: IEmbedder | None = None,
        character: Character | None = None,
        attention_config: AttentionConfig | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._config = attention_config or load_attention_config()

        self._completer: ICompleter | None = completer
        self._embedder: IEmbedder | None = embedder
        self._character: Character | None = character

        # Components (will be initialized in start())
        self._knowledge: KnowledgeStore | None = None
        self._attention: IAttention | None = None
        self._agent: Agent | None = None
        self._handler: MessageHandler | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Providers (no internal dependencies)
        if self._completer is None:
            self._completer = LLMProvider()
        if self._embedder is None:
            self._embedder = OpenAIEmbedder()
        logger.info("Model providers initialized")

        # 2. Knowledge store (depends on embedder)
        self._knowledge = KnowledgeStore(self._embedder, self._db_path)
        await self._knowledge.init()

        # 3. Attention (depends on completer)
        self._attention = Attention(self._config, self._completer)

        # 4. Agent (depends on completer + knowledge)
        if self._character is None:
            self._character = self._load_character()
        self._agent = Agent(self._character, self._completer, self._knowledge)

        # 5. MessageHandler (depends on everything above)
        self._handler = MessageHandler(
            agent=self._agent,
            attention=self._attention,
            knowledge=self._knowledge,
            config=self._config,
        )
        await self._handler.start()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._handler:
            await self._handler.stop()
        if self._knowledge:
            await self._knowledge.close()
            logger.info("Knowledge store closed")

    def _load_character(self) -> Character:
        path = resolve_character_path(os.getenv("CHARACTER_PATH"))
        if path.exists():
            return Character.load(path)

        name = self._config.bot_names[0] if self._config.bot_names else "rina"
        logger.warning("Character file %s not found, using default %s", path, name)
        return Character(name=name, preamble=f"You are {name}, a friendly chat companion.")

    @property
    def knowledge(self) -> KnowledgeStore:
        """Get knowledge store instance."""
        if not self._knowledge:
            raise RuntimeError("Application not started")
        return self._knowledge

    @property
    def handler(self) -> MessageHandler:
        """Get message handler instance."""
        if not self._handler:
            raise RuntimeError("Application not started")
        return self._handler

    @property
    def attention(self) -> IAttention:
        """Get attention engine instance."""
        if not self._attention:
            raise RuntimeError("Application not started")
        return self._attention
