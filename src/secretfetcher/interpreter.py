"""Validation and decoding of extension secret responses."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import SecretParseError, ShapeError

INVALID_FORMAT_MESSAGE = "Invalid secret response format"


@dataclass(frozen=True)
class SecretPayload:
    """The fields of a secret response that passed validation."""

    arn: str
    name: str
    secret_string: str
    version_id: Optional[str] = None


def validate_payload(raw: Any) -> SecretPayload:
    """Return ``raw`` as a :class:`SecretPayload` or raise :class:`ShapeError`.

    ``ARN``, ``Name`` and ``SecretString`` must be strings; ``VersionId`` is
    optional but must be a string when present.
    """

    if not isinstance(raw, Mapping):
        raise ShapeError(INVALID_FORMAT_MESSAGE, context={"payload_type": type(raw).__name__})

    required = ("ARN", "Name", "SecretString")
    invalid = [field for field in required if not isinstance(raw.get(field), str)]
    version_id = raw.get("VersionId")
    if "VersionId" in raw and not isinstance(version_id, str):
        invalid.append("VersionId")
    if invalid:
        raise ShapeError(INVALID_FORMAT_MESSAGE, context={"invalid_fields": invalid})

    return SecretPayload(
        arn=raw["ARN"],
        name=raw["Name"],
        secret_string=raw["SecretString"],
        version_id=version_id,
    )


def looks_like_json(value: str) -> bool:
    """Rough check: only the first non-whitespace character is inspected."""

    return isinstance(value, str) and value.strip().startswith("{")


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not valid JSON.
    raise ValueError(f"Invalid JSON constant: {name}")


def resolve_secret_string(secret_string: str) -> Any:
    if not looks_like_json(secret_string):
        return secret_string
    try:
        return json.loads(secret_string, parse_constant=_reject_constant)
    except ValueError as exc:
        context = {}
        if isinstance(exc, json.JSONDecodeError):
            context = {"line": exc.lineno, "column": exc.colno}
        raise SecretParseError(
            "SecretString looks like JSON but could not be parsed", context=context
        ) from exc


def interpret(raw: Any) -> Any:
    """Validate ``raw`` and return the parsed or verbatim ``SecretString``."""

    payload = validate_payload(raw)
    return resolve_secret_string(payload.secret_string)


__all__ = [
    "INVALID_FORMAT_MESSAGE",
    "SecretPayload",
    "validate_payload",
    "looks_like_json",
    "resolve_secret_string",
    "interpret",
]
