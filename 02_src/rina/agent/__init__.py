"""Agent module."""

from .agent import Agent, IAgent
from .character import Character

__all__ = ["Agent", "IAgent", "Character"]
