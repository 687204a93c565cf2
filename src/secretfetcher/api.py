"""Top-level helper for fetching a secret through the extension."""
from __future__ import annotations

import os
import threading
from typing import Any, Optional

import requests

from .clients.extension import ExtensionEndpoint, SecretsExtensionClient
from .config import DEFAULT_BASE_BACKOFF_MS, DEFAULT_RETRIES, DEFAULT_TIMEOUT_MS, RetryConfig

SESSION_TOKEN_ENV_VAR = "AWS_SESSION_TOKEN"


def get_secret_value(
    name: str,
    *,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
    retries: int = DEFAULT_RETRIES,
    base_backoff_ms: float = DEFAULT_BASE_BACKOFF_MS,
    session_token: Optional[str] = None,
    endpoint: Optional[ExtensionEndpoint] = None,
    session: Optional[requests.Session] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Any:
    """Fetch secret ``name`` from the Lambda secrets extension.

    Parameters
    ----------
    name:
        Secret name or ARN.
    timeout_ms, retries, base_backoff_ms:
        Per-attempt deadline, total attempt count and backoff scale.
    session_token:
        Value for the extension's token header. Falls back to
        ``AWS_SESSION_TOKEN`` and then to an empty string.
    endpoint:
        Extension address; defaults to ``ExtensionEndpoint.from_env()``.
    session:
        Optional ``requests.Session``. When omitted a session is created for
        this call and closed afterwards.
    cancel_event:
        Setting this event stops the retry loop before the next attempt or
        during a backoff wait.

    Returns
    -------
    Any
        The parsed JSON value when ``SecretString`` looks like a JSON object,
        otherwise the string itself.
    """

    config = RetryConfig(timeout_ms=timeout_ms, retries=retries, base_backoff_ms=base_backoff_ms)
    if session_token is None:
        session_token = os.environ.get(SESSION_TOKEN_ENV_VAR, "")

    with SecretsExtensionClient(
        session_token=session_token,
        endpoint=endpoint or ExtensionEndpoint.from_env(),
        session=session,
    ) as client:
        return client.get_secret_value(name, config=config, cancel_event=cancel_event)


__all__ = ["SESSION_TOKEN_ENV_VAR", "get_secret_value"]
