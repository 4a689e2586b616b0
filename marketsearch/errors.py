"""Error types raised by the search pipeline."""
from __future__ import annotations


class SearchError(Exception):
    """Base class for search pipeline failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SearchError):
    """Caller supplied filter or pagination values that cannot be served.

    Always recoverable; reported back to the client as a 400.
    """


class ProviderError(SearchError):
    """The upstream product provider failed while serving a term."""

    def __init__(self, term: str, message: str) -> None:
        super().__init__(message)
        self.term = term
