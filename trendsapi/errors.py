"""
Error taxonomy for trendsapi.

Feature calls on GoogleTrendsApi never raise; they return one of these
inside a TrendsResponse so callers can branch on the error kind.
"""

from __future__ import annotations


class GoogleTrendsError(Exception):
    """Base class for every error surfaced by the client."""

    default_message = "Google Trends request failed"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(GoogleTrendsError):
    """Connection, DNS or other transport-level failure."""

    default_message = "Network request failed"


class ParseError(GoogleTrendsError):
    """The response body could not be reduced to the expected envelope."""

    default_message = "Failed to parse response"


class InvalidRequestError(GoogleTrendsError):
    """A required input (keyword, geo) was empty."""

    default_message = "Invalid request"


class UnknownError(GoogleTrendsError):
    """Something was raised that the client does not recognize."""

    default_message = "An unknown error occurred"
