"""Client for the AWS Lambda Parameters and Secrets extension."""
from __future__ import annotations

import os
import random
import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import requests

from secretfetcher.config import RetryConfig
from secretfetcher.errors import ConfigError, ShapeError
from secretfetcher.interpreter import INVALID_FORMAT_MESSAGE, interpret
from secretfetcher.logging_config import get_logger

from .base import RetryingHTTPClient

logger = get_logger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 2773
PORT_ENV_VAR = "PARAMETERS_SECRETS_EXTENSION_HTTP_PORT"


@dataclass(frozen=True)
class ExtensionEndpoint:
    """Loopback address the extension listens on."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ExtensionEndpoint":
        """Honour the port override the extension itself reads."""

        source = os.environ if env is None else env
        raw_port = source.get(PORT_ENV_VAR)
        if not raw_port:
            return cls()
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ConfigError(f"Unable to interpret {PORT_ENV_VAR}='{raw_port}' as a port.") from exc
        return cls(port=port)


class SecretsExtensionClient(RetryingHTTPClient):
    TOKEN_HEADER = "X-Aws-Parameters-Secrets-Token"
    SECRET_PATH = "/secretsmanager/get"

    def __init__(
        self,
        *,
        session_token: str = "",
        endpoint: ExtensionEndpoint | None = None,
        session: requests.Session | None = None,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(session, rng=rng)
        self.session_token = session_token or ""
        self.endpoint = endpoint or ExtensionEndpoint()

    def _get_auth_headers(self) -> Dict[str, str]:
        return {self.TOKEN_HEADER: self.session_token}

    def build_url(self, secret_id: str) -> str:
        # Same escaping as JavaScript's encodeURIComponent.
        encoded = quote(secret_id, safe="!~*'()")
        return f"{self.endpoint.base_url}{self.SECRET_PATH}?secretId={encoded}"

    def get_secret_value(
        self,
        secret_id: str,
        *,
        config: Optional[RetryConfig] = None,
        cancel_event: threading.Event | None = None,
    ) -> Any:
        """Fetch ``secret_id`` and return its parsed or verbatim ``SecretString``."""

        if not secret_id:
            raise ConfigError("Secret name must be provided.")

        config = config or RetryConfig()
        response = self.request_with_retry(
            self.build_url(secret_id),
            config=config,
            headers=self._get_auth_headers(),
            logger_context={"service": "parameters-extension", "port": self.endpoint.port},
            cancel_event=cancel_event,
        )
        try:
            raw = response.json()
        except ValueError as exc:
            logger.error(
                "Extension returned a non-JSON body",
                extra={"status_code": response.status_code, "port": self.endpoint.port},
            )
            raise ShapeError(
                INVALID_FORMAT_MESSAGE, context={"status_code": response.status_code}
            ) from exc
        return interpret(raw)


__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "PORT_ENV_VAR",
    "ExtensionEndpoint",
    "SecretsExtensionClient",
]
