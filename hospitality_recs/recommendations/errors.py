from __future__ import annotations


class RecommendationError(Exception):
    """Base class for every error raised by the recommendation core."""


class ValidationError(RecommendationError):
    """Malformed or out-of-range input. Never retried."""


class StorageError(RecommendationError):
    """A repository read or write failed."""


class EngineNotReady(RecommendationError):
    """The engine was used before ``load()`` completed."""


class RecommendationUnavailable(RecommendationError):
    """Even the popularity fallback failed; nothing can be served."""
