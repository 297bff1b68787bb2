"""Knowledge store module."""

from .store import IKnowledgeStore, KnowledgeStore
from .vector_index import VectorIndex

__all__ = ["IKnowledgeStore", "KnowledgeStore", "VectorIndex"]
