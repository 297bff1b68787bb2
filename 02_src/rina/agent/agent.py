"""Reply generation grounded in the knowledge store."""

from datetime import datetime
from typing import Protocol

from ..errors import ProviderError
from ..knowledge import IKnowledgeStore
from ..llm import ICompleter, TextChoice
from ..logging_config import get_logger
from .character import Character

logger = get_logger(__name__)

# Number of documents pulled into the prompt for each reply
DYNAMIC_CONTEXT_SIZE = 2


class IAgent(Protocol):
    """Character agent that writes replies."""

    async def generate_reply(
        self, message: str, history: list[tuple[str, str]]
    ) -> str:
        """Write a reply to a message given chronological (author_id, content) history."""
        ...


class Agent:
    """Builds the reply prompt from character, retrieved documents and history."""

    def __init__(
        self,
        character: Character,
        completer: ICompleter,
        knowledge: IKnowledgeStore,
    ):
        logger.info("Creating agent %s", character.name)
        self._character = character
        self._completer = completer
        self._knowledge = knowledge

    @property
    def character(self) -> Character:
        return self._character

    @property
    def knowledge(self) -> IKnowledgeStore:
        return self._knowledge

    async def generate_reply(
        self, message: str, history: list[tuple[str, str]]
    ) -> str:
        """Write a reply. Raises ProviderError or EmbeddingError on provider failure."""
        documents = await self._knowledge.document_index().top_n(
            message, DYNAMIC_CONTEXT_SIZE
        )
        logger.debug("Retrieved %s documents for reply context", len(documents))

        system = self._build_system(
            [doc.content for doc in documents],
        )
        recent = "\n".join(f"- {content}" for _, content in history)
        prompt = (
            f"Current time: {datetime.now().strftime('%I:%M:%S %p, %Y-%m-%d')}\n"
            "Please keep your responses concise and under 2000 characters when possible.\n"
            f"Your response should be based on the latest messages:\n{recent}\n\n"
            f"Generate a reply to this message: {message}"
        )

        choice = await self._completer.complete(prompt, system=system)
        if not isinstance(choice, TextChoice):
            raise ProviderError("Model returned a tool call instead of a reply")

        return choice.text

    def _build_system(self, documents: list[str]) -> str:
        character = self._character
        sections = [
            character.preamble,
            f"Your name is: {character.name}",
        ]
        if character.topics:
            sections.append(f"Topics of expertise: {', '.join(character.topics)}")
        if character.message_examples:
            examples = "\n".join(character.message_examples)
            sections.append(f"Example messages for reference:\n{examples}")
        for document in documents:
            sections.append(f"<document>\n{document}\n</document>")
        return "\n\n".join(section for section in sections if section)
