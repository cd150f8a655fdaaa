"""Error taxonomy for upstream calls and input validation."""
from __future__ import annotations

from typing import Optional


class PolywatchError(Exception):
    """Base class for all polywatch errors."""
    pass


class FetchError(PolywatchError):
    """An upstream call failed after the fetch client gave up."""

    retryable = False

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TransportError(FetchError):
    """Network-level failure: timeout, connection reset, DNS."""

    retryable = True


class RateLimitOrServerError(FetchError):
    """HTTP 429 or 5xx still failing after the retry budget was spent."""

    retryable = True


class ClientRequestError(FetchError):
    """HTTP 4xx other than 429; the query itself is wrong."""
    pass


class ParseError(FetchError):
    """Response body was not valid JSON."""
    pass


class ValidationError(PolywatchError, ValueError):
    """Malformed caller input, rejected before any network call."""
    pass
