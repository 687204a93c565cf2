"""Retrying HTTP client used to talk to the secrets extension."""
from __future__ import annotations

import random
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import requests

from secretfetcher.backoff import full_jitter
from secretfetcher.config import RetryConfig
from secretfetcher.errors import (
    FetchCancelledError,
    FetchError,
    FetchTimeoutError,
    NonRetriableHttpError,
    RetriableHttpError,
    RetriesExhaustedError,
    TransportError,
)
from secretfetcher.logging_config import get_logger

logger = get_logger(__name__)


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRIABLE = "retriable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class FetchAttempt:
    """Result of a single request attempt, used for classification and logging."""

    number: int
    outcome: AttemptOutcome
    status_code: Optional[int] = None
    error: Optional[str] = None

    def as_context(self) -> Dict[str, Any]:
        context: Dict[str, Any] = {"attempt": self.number, "outcome": self.outcome.value}
        if self.status_code is not None:
            context["status_code"] = self.status_code
        if self.error is not None:
            context["error"] = self.error
        return context


class RetryingHTTPClient:
    """GET requests with a per-attempt timeout and full jitter backoff.

    Attempts run strictly one after another. Only a 2xx response leaves the
    loop successfully; everything else either retries or raises a
    :class:`~secretfetcher.errors.FetchError` subclass.
    """

    RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
    # The extension answers 400 with this text while it is still initialising.
    _NOT_READY_PATTERN = re.compile(r"not\s+ready.*traffic", re.IGNORECASE)
    _CHUNK_SIZE = 1024

    def __init__(self, session: requests.Session | None = None, *, rng: random.Random | None = None) -> None:
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self._random = rng or random.Random()
        self._clock = time.monotonic

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RetryingHTTPClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Networking ---------------------------------------------------------
    def _sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def _wait(self, seconds: float, cancel_event: threading.Event | None, context: Dict[str, Any]) -> None:
        if cancel_event is None:
            self._sleep(seconds)
            return
        if cancel_event.wait(seconds):
            logger.info("Fetch cancelled during backoff", extra=context)
            raise FetchCancelledError("Fetch cancelled during backoff", context=context)

    @classmethod
    def _classify_status(cls, status: int, body: str) -> str | None:
        """Return why ``status`` is retriable, or ``None`` when it is terminal."""

        if status in cls.RETRYABLE_STATUSES:
            return "status"
        if status == 400 and cls._NOT_READY_PATTERN.search(body or ""):
            return "not_ready"
        return None

    def _read_body(self, response: requests.Response, deadline: float, config: RetryConfig) -> None:
        """Consume the streamed body, aborting once the attempt's deadline has passed."""

        def _check_deadline() -> None:
            if self._clock() >= deadline:
                raise requests.Timeout(f"Attempt exceeded its {config.timeout_ms} ms deadline")

        chunks: List[bytes] = []
        try:
            _check_deadline()
            for chunk in response.iter_content(chunk_size=self._CHUNK_SIZE):
                if chunk:
                    chunks.append(chunk)
                _check_deadline()
        except BaseException:
            response.close()
            raise
        # Hand the buffered body back so .text and .json() work as usual.
        response._content = b"".join(chunks)
        response._content_consumed = True

    def _compute_delay(self, attempt: int, config: RetryConfig) -> float:
        return full_jitter(config.base_backoff_ms, attempt, self._random) / 1000

    def request_with_retry(
        self,
        url: str,
        *,
        config: RetryConfig,
        headers: Mapping[str, str] | None = None,
        logger_context: Dict[str, Any] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> requests.Response:
        for attempt in range(1, config.retries + 1):
            context = dict(logger_context or {})
            context.update({"method": "GET", "attempt": attempt, "max_attempts": config.retries})

            if cancel_event is not None and cancel_event.is_set():
                logger.info("Fetch cancelled before attempt", extra=context)
                raise FetchCancelledError("Fetch cancelled before attempt", context=context)

            logger.debug("HTTP request", extra=context)
            start = time.perf_counter()
            deadline = self._clock() + config.timeout_seconds
            retry_reason = "exception"
            try:
                response = self.session.request(
                    method="GET",
                    url=url,
                    headers=dict(headers or {}),
                    timeout=config.timeout_seconds,
                    stream=True,
                )
                self._read_body(response, deadline, config)
            except requests.Timeout as exc:
                record = FetchAttempt(attempt, AttemptOutcome.RETRIABLE, error="timeout")
                failure: FetchError = FetchTimeoutError(str(exc), context=record.as_context())
                failure.__cause__ = exc
                context["error_message"] = str(exc)
            except requests.ConnectionError as exc:
                record = FetchAttempt(attempt, AttemptOutcome.RETRIABLE, error="connection")
                failure = TransportError(str(exc), context=record.as_context())
                failure.__cause__ = exc
                context["error_message"] = str(exc)
            else:
                status = response.status_code
                context.update(
                    {
                        "status_code": status,
                        "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
                    }
                )
                if 200 <= status < 300:
                    logger.debug("HTTP response", extra=context)
                    return response

                body = response.text
                reason = self._classify_status(status, body)
                if reason is None:
                    record = FetchAttempt(attempt, AttemptOutcome.TERMINAL, status_code=status)
                    logger.error("Non-retriable HTTP status", extra=context)
                    raise NonRetriableHttpError(
                        status, context={**record.as_context(), "snippet": body[:200]}
                    )
                record = FetchAttempt(attempt, AttemptOutcome.RETRIABLE, status_code=status)
                failure = RetriableHttpError(status, context=record.as_context())
                retry_reason = reason

            context.update(record.as_context())
            if attempt >= config.retries:
                logger.error("Retries exhausted", extra=context)
                raise RetriesExhaustedError(failure, attempts=attempt) from failure

            delay = self._compute_delay(attempt, config)
            context["retry_in_s"] = round(delay, 3)
            if retry_reason == "not_ready":
                logger.warning("Extension not ready, retrying", extra=context)
            elif retry_reason == "status":
                logger.warning("Retrying after status", extra=context)
            else:
                logger.warning("Retrying after exception", extra=context)
            self._wait(delay, cancel_event, context)

        raise FetchError("Retry loop exited without a result")


__all__ = ["AttemptOutcome", "FetchAttempt", "RetryingHTTPClient"]
