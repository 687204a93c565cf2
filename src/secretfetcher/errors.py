"""Exception hierarchy for secret fetching."""
from __future__ import annotations

from typing import Any


class SecretFetcherError(RuntimeError):
    """Base exception that carries structured context."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ConfigError(SecretFetcherError):
    """Raised when retry configuration validation fails."""


class FetchError(SecretFetcherError):
    """Raised when the extension request does not produce a usable response."""


class FetchTimeoutError(FetchError):
    """Raised when a single attempt exceeds its deadline."""


class TransportError(FetchError):
    """Raised when the connection to the extension fails."""


class RetriableHttpError(FetchError):
    """Raised for a status that is worth retrying (429, 5xx, extension not ready)."""

    def __init__(self, status_code: int, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(f"HTTP {status_code}", context=context)
        self.status_code = status_code


class NonRetriableHttpError(FetchError):
    """Raised for any other non-success status; never retried."""

    def __init__(self, status_code: int, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(f"Non-retriable HTTP error: {status_code}", context=context)
        self.status_code = status_code


class RetriesExhaustedError(FetchError):
    """Raised when the final allowed attempt still failed retriably.

    The message mirrors the last attempt's error and ``last_error`` keeps the
    typed failure for callers that want to branch on it.
    """

    def __init__(self, last_error: FetchError, *, attempts: int) -> None:
        context = dict(last_error.context)
        context["attempts"] = attempts
        super().__init__(str(last_error), context=context)
        self.last_error = last_error
        self.attempts = attempts


class FetchCancelledError(FetchError):
    """Raised when the caller cancels the retrying operation."""


class SecretResponseError(SecretFetcherError):
    """Raised when a successful response cannot be turned into a secret."""


class ShapeError(SecretResponseError):
    """Raised when the response payload is not shaped like a secret response."""


class SecretParseError(SecretResponseError):
    """Raised when ``SecretString`` looks like JSON but does not parse."""


__all__ = [
    "SecretFetcherError",
    "ConfigError",
    "FetchError",
    "FetchTimeoutError",
    "TransportError",
    "RetriableHttpError",
    "NonRetriableHttpError",
    "RetriesExhaustedError",
    "FetchCancelledError",
    "SecretResponseError",
    "ShapeError",
    "SecretParseError",
]
