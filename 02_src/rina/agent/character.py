"""Character profile loaded from TOML."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from ..logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Character:
    """Persona the agent speaks as."""

    name: str
    preamble: str
    topics: list[str] = field(default_factory=list)
    message_examples: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> "Character":
        """Load a character profile from a TOML file."""
        logger.info("Loading character configuration from %s", path)
        with open(path, "rb") as f:
            data = tomllib.load(f)

        character = cls(
            name=data["name"],
            preamble=data.get("preamble", ""),
            topics=list(data.get("topics", [])),
            message_examples=list(data.get("message_examples", [])),
        )
        logger.debug("Character %s loaded", character.name)
        return character
