"""Exceptions raised while searching for committer identities."""

from __future__ import annotations

from typing import Optional


class CommitterSearchError(Exception):
    """Base error. ``exit_code`` is the process status the CLI reports."""

    exit_code: int = 1

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(CommitterSearchError):
    """A required setting is missing or unusable. Nothing was fetched."""

    exit_code = 0


class AuthError(CommitterSearchError):
    """GitHub rejected the token."""


class AccountLookupError(CommitterSearchError, LookupError):
    """The account handle could not be resolved to a node id."""


class QueryError(CommitterSearchError):
    """A GraphQL page request failed. Aborts the whole traversal."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        rate_limit_reset: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp
        super().__init__(message)


class TraversalCancelled(CommitterSearchError):
    """The traversal deadline passed before the walk finished."""
