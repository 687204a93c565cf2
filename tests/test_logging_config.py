from __future__ import annotations

import importlib
import json
import logging
import sys
from types import ModuleType
from typing import Iterator, List

import pytest
import requests

from secretfetcher.clients.extension import SecretsExtensionClient
from secretfetcher.config import RetryConfig

from tests.helpers_http import DummyResponse, FakeSession, secret_payload


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _reload_logging(monkeypatch: pytest.MonkeyPatch, **env: str) -> ModuleType:
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    sys.modules.pop("secretfetcher.logging_config", None)
    return importlib.import_module("secretfetcher.logging_config")


def test_structured_logging_includes_correlation_id(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("SECRETFETCHER_LOG_JSON", raising=False)
    logging_module = _reload_logging(monkeypatch, SECRETFETCHER_CORR_ID="test-corr-id")
    logging_module.configure_logging("INFO")
    logger = logging_module.get_logger("test.logger")

    logger.info("hello world")

    output = capsys.readouterr().out.strip()
    assert "hello world" in output
    assert "test-corr-id" in output
    assert "test.logger" in output
    assert output.startswith("20")


def test_json_logging_mode(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    logging_module = _reload_logging(monkeypatch, SECRETFETCHER_LOG_JSON="true")
    logging_module.configure_logging("INFO")
    logger = logging_module.get_logger("json.logger")

    logger.info("structured message", extra={"attempt": 2, "status_code": 503})

    payload = json.loads(capsys.readouterr().out.strip())
    assert payload["message"] == "structured message"
    assert payload["correlation_id"] == logging_module.get_correlation_id()
    assert payload["attempt"] == 2
    assert payload["status_code"] == 503


def test_secret_redaction(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    logging_module = _reload_logging(monkeypatch, SECRETFETCHER_LOG_JSON="true")
    logging_module.configure_logging("DEBUG")
    logger = logging_module.get_logger("redact.logger")

    logger.debug(
        "request sent",
        extra={"session_token": "abc123", "nested": {"secret": "shhh"}, "url": "http://x/?secretId=db"},
    )

    output = capsys.readouterr().out
    payload = json.loads(output.strip())
    assert payload["session_token"] == "***REDACTED***"
    assert payload["nested"]["secret"] == "***REDACTED***"
    assert payload["url"] == "http://x/?secretId=***REDACTED***"
    assert payload["logger"] == "redact.logger"
    assert "abc123" not in output
    assert "shhh" not in output


def test_level_override(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("SECRETFETCHER_LOG_JSON", raising=False)
    logging_module = _reload_logging(monkeypatch)
    logging_module.configure_logging("ERROR")
    logger = logging_module.get_logger("quiet.logger")

    logger.warning("dropped")
    logger.error("kept")

    output = capsys.readouterr().out
    assert "dropped" not in output
    assert "kept" in output


def test_retry_line_keeps_transport_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], sleeps: List[float]
) -> None:
    logging_module = _reload_logging(monkeypatch, SECRETFETCHER_LOG_JSON="true")
    logging_module.configure_logging("WARNING")
    session = FakeSession(
        [
            requests.ConnectionError(
                "HTTPConnectionPool(host='localhost', port=2773): Max retries exceeded with url:"
                " /secretsmanager/get?secretId=prod-db-creds (Caused by NewConnectionError: refused)"
            ),
            DummyResponse(200, secret_payload()),
        ]
    )
    client = SecretsExtensionClient(session=session, session_token="tok")  # type: ignore[arg-type]

    assert client.get_secret_value("prod-db-creds", config=RetryConfig(retries=2)) == "plain"

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
    retry = next(line for line in lines if line["message"] == "Retrying after exception")
    assert retry["service"] == "parameters-extension"
    assert retry["error"] == "connection"
    assert "Max retries exceeded" in retry["error_message"]
    assert "secretId=***REDACTED***" in retry["error_message"]
    assert "prod-db-creds" not in retry["error_message"]
