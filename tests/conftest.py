"""Shared pytest fixtures for secretfetcher tests."""

from __future__ import annotations

import socket
from typing import List

import pytest

from secretfetcher.clients.base import RetryingHTTPClient


@pytest.fixture(autouse=True)
def _disable_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent network access during the test suite.

    Every request goes through a fake session; reaching a real socket means a
    test forgot to inject one.
    """

    def _guard(*args: object, **kwargs: object) -> socket.socket:  # type: ignore[override]
        raise RuntimeError("Network access is disabled during tests.")

    monkeypatch.setattr(socket, "socket", _guard)
    monkeypatch.setattr(socket, "create_connection", _guard)


@pytest.fixture(autouse=True)
def _clear_extension_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "AWS_SESSION_TOKEN",
        "PARAMETERS_SECRETS_EXTENSION_HTTP_PORT",
        "SECRETFETCHER_TIMEOUT_MS",
        "SECRETFETCHER_RETRIES",
        "SECRETFETCHER_BASE_BACKOFF_MS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Record backoff waits instead of sleeping."""

    delays: List[float] = []
    monkeypatch.setattr(RetryingHTTPClient, "_sleep", lambda self, seconds: delays.append(seconds))
    return delays
