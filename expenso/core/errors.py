"""
Error taxonomy shared by the store, the remote advisor and the routers.
"""
from typing import Optional


class AdvisorError(Exception):
    """Base class for failures of the remote advisory call."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(AdvisorError):
    """Provider answered 429 / quota exhausted. The only retryable failure."""


class PermanentFailureError(AdvisorError):
    """Auth errors, malformed requests, 5xx and anything else non-retryable."""


class NetworkError(AdvisorError):
    """Transport failure or timeout before a response arrived."""


class InvalidBudgetError(ValueError):
    """Raised when a pacing computation receives weekly_budget <= 0."""

    def __init__(self, weekly_budget: float) -> None:
        super().__init__(f"weekly_budget must be greater than 0, got {weekly_budget!r}")
        self.weekly_budget = weekly_budget


class StoreError(Exception):
    """DynamoDB read or write failed."""


def is_rate_limited(error: BaseException) -> bool:
    """
    True when the failure signals rate limiting.

    Typed errors are checked first; plain exceptions fall back to looking for
    "429" in the message, which is how the provider SDK surfaces it.
    """
    if isinstance(error, RateLimitedError):
        return True
    return "429" in str(error)
