"""Errors raised by execution backends."""

from __future__ import annotations


class LLMError(Exception):
    """Base class for failures of the execution backend."""


class RateLimitedError(LLMError):
    """The API asked us to slow down."""

    def __init__(self, retry_after_ms: int = 1000) -> None:
        self.retry_after_ms = retry_after_ms
        super().__init__(f"rate limited, retry after {retry_after_ms}ms")


class APIStatusError(LLMError):
    """The API answered with a non-success status code."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"API error (status {status}): {message}")


class NetworkError(LLMError):
    """The request never got a response (connection failure, timeout)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"network error: {message}")


class ClassificationError(ValueError):
    """Model output could not be parsed into the expected JSON shape."""
