"""
Exception taxonomy for the SongReply matching engine.

Fatal errors (subclasses of FatalPipelineError) propagate out of the pipeline.
Everything else is handled inside the component that raised it and degrades
that component's signal.
"""

from typing import Optional


class SongReplyError(Exception):
    """Base class for all SongReply errors."""


class FatalPipelineError(SongReplyError):
    """An error that must surface to the caller instead of degrading."""


class EmbeddingError(SongReplyError):
    """The embedding collaborator failed to produce a vector."""

    def __init__(self, message: str, provider: str = "unknown", cause: Optional[Exception] = None):
        super().__init__(message)
        self.provider = provider
        self.cause = cause


class EmbeddingDimensionError(FatalPipelineError):
    """Query vector width does not match the catalog's stored vector width."""

    def __init__(self, got: int, expected: int):
        super().__init__(f"Embedding dimension mismatch: got {got}, expected {expected}")
        self.got = got
        self.expected = expected


class VectorSearchError(FatalPipelineError):
    """A nearest-neighbor query errored while eligible songs exist."""

    def __init__(self, message: str, eligible_count: int = 0, cause: Optional[Exception] = None):
        super().__init__(message)
        self.eligible_count = eligible_count
        self.cause = cause


class UnexpectedEmptyResultError(VectorSearchError):
    """A nearest-neighbor query returned zero rows against a populated index."""


class ConfigurationError(SongReplyError):
    """Invalid or inconsistent configuration."""
