"""Exception hierarchy shared by the ingestion and retrieval pipeline."""


class RuboragError(Exception):
    """Base class for all errors raised by ruborag."""


class ConfigurationError(RuboragError):
    """Required configuration (e.g. an API key) is missing or invalid."""


class InvalidArgument(RuboragError, ValueError):
    """A caller passed a value the operation cannot accept."""


class EmbeddingError(RuboragError):
    """Base class for embedding gateway failures."""


class EmbeddingUnavailable(EmbeddingError):
    """The embedding service could not be reached, authenticated or timed out."""


class EmptyInput(EmbeddingError):
    """Text to embed is empty after trimming."""


class ModelError(EmbeddingError):
    """The embedding model rejected the input or returned an unusable vector."""


class CorruptBlob(RuboragError):
    """A stored vector blob cannot be decoded."""


class StorageError(RuboragError):
    """The embedding store failed to open, read or write."""


class NothingToSearch(RuboragError):
    """Retrieval was requested against an empty index."""
