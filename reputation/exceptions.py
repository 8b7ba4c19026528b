"""Exception hierarchy for the reputation analyzer.

Only :class:`ValidationError` and :class:`AggregateFailure` are meant to reach
the public entry point.  Fetch, storage, and provider errors are caught at the
boundary of the component that owns the failing branch and converted into a
fallback value there.
"""

from typing import Optional


class ReputationError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(ReputationError, ValueError):
    """Bad caller input (e.g. empty company name).  Never retried."""


class FetchError(ReputationError):
    """A page fetch timed out, could not connect, or returned non-2xx."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class StorageError(ReputationError):
    """The persistence layer is unavailable or rejected an operation."""


class ProviderError(ReputationError):
    """A generative-AI or review provider call failed."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider


class NoReviewsError(ReputationError):
    """Sentiment summarization was asked to run over zero reviews."""


class AggregateFailure(ReputationError):
    """Company identity could not be established, or the run failed outright."""
