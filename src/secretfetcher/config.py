"""Retry configuration for extension requests."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .errors import ConfigError

DEFAULT_TIMEOUT_MS = 2000
DEFAULT_RETRIES = 3
DEFAULT_BASE_BACKOFF_MS = 300

# Maps RetryConfig fields to the environment variables that override them.
ENV_KEYS: dict[str, str] = {
    "timeout_ms": "SECRETFETCHER_TIMEOUT_MS",
    "retries": "SECRETFETCHER_RETRIES",
    "base_backoff_ms": "SECRETFETCHER_BASE_BACKOFF_MS",
}


@dataclass(frozen=True)
class RetryConfig:
    """Per-call tuning for the retry loop.

    ``timeout_ms`` bounds each attempt, ``retries`` is the total number of
    attempts and ``base_backoff_ms`` scales the jittered wait between them.
    """

    timeout_ms: float = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    base_backoff_ms: float = DEFAULT_BASE_BACKOFF_MS

    def __post_init__(self) -> None:
        if isinstance(self.retries, bool) or not isinstance(self.retries, int):
            raise ConfigError(f"retries must be an integer, got {self.retries!r}")
        if self.timeout_ms <= 0:
            raise ConfigError(f"timeout_ms must be greater than zero, got {self.timeout_ms}")
        if self.retries < 1:
            raise ConfigError(f"retries must be at least 1, got {self.retries}")
        if self.base_backoff_ms <= 0:
            raise ConfigError(
                f"base_backoff_ms must be greater than zero, got {self.base_backoff_ms}"
            )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RetryConfig":
        """Build a config from a mapping, ignoring unknown keys."""

        kwargs = {key: data[key] for key in ENV_KEYS if data.get(key) is not None}
        return cls(**kwargs)


def load_yaml_defaults(path: str | Path | None) -> dict:
    """Load retry defaults from ``path``.

    A missing file yields an empty dictionary. The settings may sit at the top
    level or under a ``retry`` block.
    """

    if not path:
        return {}

    yaml_path = Path(path)
    if not yaml_path.exists():
        return {}

    with yaml_path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse YAML config at {yaml_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected top-level mapping in configuration file '{yaml_path}',"
            f" but received {type(data).__name__}."
        )

    retry_block = data.get("retry")
    if isinstance(retry_block, dict):
        return dict(retry_block)
    return data


def _coerce_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as exc:
        raise ConfigError(f"Unable to interpret integer value for {name}: '{value}'.") from exc


def load_env_overrides(env: Mapping[str, str] | None = None) -> dict:
    """Return retry overrides found in ``env`` (defaults to ``os.environ``)."""

    source = os.environ if env is None else env
    overrides: Dict[str, Any] = {}
    for key, env_name in ENV_KEYS.items():
        value = source.get(env_name)
        if value is None or value == "":
            continue
        overrides[key] = _coerce_int(env_name, value)
    return overrides


def merge_configs(*dicts: Mapping[str, Any] | None) -> dict:
    """Merge dictionaries honoring precedence from left to right."""

    merged: Dict[str, Any] = {}
    for cfg in reversed(dicts):
        if not cfg:
            continue
        merged.update({key: value for key, value in cfg.items() if value is not None})
    return merged


def load_retry_config(
    config_path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RetryConfig:
    """Build a :class:`RetryConfig` from explicit overrides, environment and YAML."""

    if config_path and not Path(config_path).exists():
        raise ConfigError(f"Configuration file '{config_path}' was not found.")

    merged = merge_configs(overrides, load_env_overrides(env), load_yaml_defaults(config_path))
    return RetryConfig.from_mapping(merged)


__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_RETRIES",
    "DEFAULT_BASE_BACKOFF_MS",
    "RetryConfig",
    "load_yaml_defaults",
    "load_env_overrides",
    "merge_configs",
    "load_retry_config",
]
