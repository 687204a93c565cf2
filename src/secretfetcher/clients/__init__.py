"""HTTP clients for the secrets extension."""

from .base import AttemptOutcome, FetchAttempt, RetryingHTTPClient
from .extension import ExtensionEndpoint, SecretsExtensionClient

__all__ = [
    "AttemptOutcome",
    "FetchAttempt",
    "RetryingHTTPClient",
    "ExtensionEndpoint",
    "SecretsExtensionClient",
]
