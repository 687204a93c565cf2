from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List

import pytest
import requests

from secretfetcher import cli
from secretfetcher.errors import NonRetriableHttpError

from tests.helpers_http import FakeSession


@pytest.fixture
def fetch_calls(monkeypatch: pytest.MonkeyPatch) -> List[Dict[str, Any]]:
    calls: List[Dict[str, Any]] = []

    def _fake_get_secret_value(name: str, **kwargs: Any) -> Any:
        calls.append({"name": name, **kwargs})
        return {"username": "admin"}

    monkeypatch.setattr(cli, "get_secret_value", _fake_get_secret_value)
    return calls


def test_prints_structured_secret_as_json(fetch_calls: List[Dict[str, Any]], capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["db-creds", "--log-level", "CRITICAL"]) == 0

    assert json.loads(capsys.readouterr().out) == {"username": "admin"}
    assert fetch_calls[0]["name"] == "db-creds"
    assert fetch_calls[0]["retries"] == 3
    assert fetch_calls[0]["endpoint"] is None


def test_prints_plain_secret_verbatim(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(cli, "get_secret_value", lambda name, **_: "plain value")

    assert cli.main(["api-key", "--log-level", "CRITICAL"]) == 0
    assert capsys.readouterr().out == "plain value\n"


def test_cli_flags_override_config_file(
    tmp_path: Path, fetch_calls: List[Dict[str, Any]], capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = tmp_path / "secretfetcher.yaml"
    config_path.write_text("retry:\n  retries: 7\n  timeout_ms: 100\n", encoding="utf-8")

    exit_code = cli.main(
        ["db-creds", "--config", str(config_path), "--timeout-ms", "900", "--port", "2800", "--log-level", "CRITICAL"]
    )

    assert exit_code == 0
    call = fetch_calls[0]
    assert call["retries"] == 7
    assert call["timeout_ms"] == 900
    assert call["endpoint"].port == 2800


def test_fetch_errors_exit_with_one(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    def _fail(name: str, **_: Any) -> Any:
        raise NonRetriableHttpError(404)

    monkeypatch.setattr(cli, "get_secret_value", _fail)

    assert cli.main(["missing", "--log-level", "CRITICAL"]) == 1
    assert "Non-retriable HTTP error: 404" in capsys.readouterr().err


def test_invalid_retry_flag_exits_with_one(fetch_calls: List[Dict[str, Any]], capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["db-creds", "--retries", "0", "--log-level", "CRITICAL"]) == 1
    assert fetch_calls == []
    assert "retries must be at least 1" in capsys.readouterr().err


def test_missing_name_is_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args([])
    assert excinfo.value.code == 2


def test_dotenv_file_is_loaded(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("SECRETFETCHER_DOTENV_MARKER", "placeholder")
    monkeypatch.delenv("SECRETFETCHER_DOTENV_MARKER")
    (tmp_path / ".env").write_text("SECRETFETCHER_DOTENV_MARKER=from-dotenv\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    seen: Dict[str, Any] = {}

    def _capture(name: str, **_: Any) -> str:
        seen["marker"] = os.environ.get("SECRETFETCHER_DOTENV_MARKER")
        return "ok"

    monkeypatch.setattr(cli, "get_secret_value", _capture)

    assert cli.main(["anything", "--log-level", "CRITICAL"]) == 0
    assert seen["marker"] == "from-dotenv"


def test_empty_name_reports_error_and_exits_with_one(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(requests, "Session", lambda: FakeSession([]))

    assert cli.main(["", "--log-level", "CRITICAL"]) == 1
    assert "Secret name must be provided" in capsys.readouterr().err
