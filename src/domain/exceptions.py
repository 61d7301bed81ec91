"""
domain.exceptions - Custom exception hierarchy for the recipe RAG service.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class ConfigurationError(DomainError):
    """Raised at startup when a required setting or credential is missing."""


class CorpusLoadError(DomainError):
    """Raised when a corpus batch fails to embed or upsert.

    The whole load is aborted; the resume path picks up from the store's
    own count on the next run.
    """

    def __init__(self, message: str, batch_number: int = 0, start_offset: int = 0):
        super().__init__(message)
        self.batch_number = batch_number
        self.start_offset = start_offset


class UpstreamError(DomainError):
    """Raised when an LLM, embeddings or vector index call fails."""


class UpstreamTimeoutError(UpstreamError):
    """Raised when a request deadline expires during an upstream call."""


class ServiceNotReadyError(DomainError):
    """Raised when a query arrives before the corpus is ready."""
