"""Failure signals surfaced by the history service to its callers."""

from __future__ import annotations


class EnsHistoryError(Exception):
    """Base class for terminal history lookup failures."""


class NotFoundError(EnsHistoryError, LookupError):
    """The requested domain does not exist in the subgraph."""

    def __init__(self, name: str) -> None:
        super().__init__(f'ENS domain "{name}" does not exist')
        self.name = name


class UnresolvedOwnerError(EnsHistoryError):
    """The domain exists but has no owner or is held by the zero address."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f'Sorry, we are unsure of this error. "{name}" may not exist or may have no owner'
        )
        self.name = name


class RateLimitedError(EnsHistoryError):
    """Upstream data source is throttling requests; callers may back off and retry."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Rate limit exceeded. The Graph API is rate-limiting requests. "
            "Please wait a moment and try again, or check your API key configuration."
        )


class SubgraphQueryError(EnsHistoryError):
    """The subgraph answered with a GraphQL error payload."""


__all__ = [
    "EnsHistoryError",
    "NotFoundError",
    "RateLimitedError",
    "SubgraphQueryError",
    "UnresolvedOwnerError",
]
