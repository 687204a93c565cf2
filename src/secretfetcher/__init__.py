"""Resilient client for the AWS Lambda Parameters and Secrets extension."""

from .api import get_secret_value
from .clients.extension import ExtensionEndpoint, SecretsExtensionClient
from .config import RetryConfig, load_retry_config
from .errors import (
    ConfigError,
    FetchCancelledError,
    FetchError,
    FetchTimeoutError,
    NonRetriableHttpError,
    RetriableHttpError,
    RetriesExhaustedError,
    SecretFetcherError,
    SecretParseError,
    SecretResponseError,
    ShapeError,
    TransportError,
)

__all__ = [
    "get_secret_value",
    "ExtensionEndpoint",
    "SecretsExtensionClient",
    "RetryConfig",
    "load_retry_config",
    "ConfigError",
    "FetchCancelledError",
    "FetchError",
    "FetchTimeoutError",
    "NonRetriableHttpError",
    "RetriableHttpError",
    "RetriesExhaustedError",
    "SecretFetcherError",
    "SecretParseError",
    "SecretResponseError",
    "ShapeError",
    "TransportError",
]
