"""Exception hierarchy for Rina."""


class RinaError(Exception):
    """Base class for all Rina errors."""


class StorageError(RinaError):
    """Database or transaction failure in the knowledge store."""


class ConversionError(StorageError):
    """A stored enum string could not be decoded (data corruption)."""


class EmbeddingError(RinaError):
    """Embedding a message or document batch failed."""


class ProviderError(RinaError):
    """Completion or embedding provider call failed."""
