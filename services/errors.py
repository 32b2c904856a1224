"""Failure types shared by collaborators, tools and the orchestrator."""

from __future__ import annotations

from typing import Optional


class ExternalServiceFailure(Exception):
    """A commerce, generation or messaging call failed.

    Args:
        service: Short name of the failing collaborator (e.g. "commerce").
        message: Upstream error text, surfaced to the merchant.
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(message)
        self.service = service
        self.message = message


class RateLimited(ExternalServiceFailure):
    """An upstream rate limit; `retry_after` is in seconds."""

    def __init__(self, service: str, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(service, message)
        self.retry_after = retry_after


class StoreUnavailable(Exception):
    """The session store could not be read or written."""


def parse_retry_after(value: Optional[str], default: float = 30.0) -> float:
    """Return the number of seconds in a `Retry-After` header value."""
    if not value:
        return default
    try:
        return max(0.0, float(value))
    except ValueError:
        return default
