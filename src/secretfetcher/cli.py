"""Command line entry point for fetching a secret from the extension."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Iterable, Optional

from dotenv import load_dotenv

from .api import get_secret_value
from .clients.extension import ExtensionEndpoint
from .config import load_retry_config
from .errors import SecretFetcherError
from .logging_config import configure_logging, get_logger


def _load_local_dotenv() -> None:
    """Load a ``.env`` file from the working directory when one exists."""

    env_path = Path.cwd() / ".env"
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path)


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secretfetcher",
        description="Fetch a value from the Lambda Parameters and Secrets extension",
    )
    parser.add_argument("name", help="Secret name or ARN")
    parser.add_argument("--config", help="Path to a YAML file with retry defaults")
    parser.add_argument("--timeout-ms", dest="timeout_ms", type=int, help="Per-attempt timeout in milliseconds")
    parser.add_argument("--retries", type=int, help="Maximum number of attempts")
    parser.add_argument(
        "--base-backoff-ms",
        dest="base_backoff_ms",
        type=int,
        help="Base delay used by the jittered backoff",
    )
    parser.add_argument("--port", type=int, help="Extension HTTP port (defaults to 2773)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    return parser


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments into a namespace."""

    parser = _create_parser()
    return parser.parse_args(None if argv is None else list(argv))


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, sort_keys=True)


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Fetch the requested secret and print it to stdout."""

    _load_local_dotenv()
    args = parse_args(argv)
    configure_logging(args.log_level)
    logger = get_logger(__name__)

    try:
        config = load_retry_config(
            args.config,
            overrides={
                "timeout_ms": args.timeout_ms,
                "retries": args.retries,
                "base_backoff_ms": args.base_backoff_ms,
            },
        )
        endpoint = ExtensionEndpoint(port=args.port) if args.port else None
        value = get_secret_value(
            args.name,
            timeout_ms=config.timeout_ms,
            retries=config.retries,
            base_backoff_ms=config.base_backoff_ms,
            endpoint=endpoint,
        )
    except SecretFetcherError as exc:
        logger.debug("Fetch failed", extra={"error_type": type(exc).__name__, "error_context": exc.context})
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(_render(value))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
