"""
Escalating-timeout retry wrapper shared by every backend client.

One attempt per entry of the timeout schedule; only timeouts, connection
failures and 408/429/5xx are retried. Any other 4xx ends the call at once.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, Sequence, TypeVar

import openai
import requests

from services.errors import (
    TRANSIENT_STATUSES,
    ExtractionError,
    FatalBackendError,
    TransientBackendError,
    user_message_for_status,
)


T = TypeVar("T")


def _request_id_from_headers(headers) -> Optional[str]:
    if not headers:
        return None
    try:
        return headers.get("x-request-id") or headers.get("x-goog-request-id")
    except AttributeError:
        return None


def classify_exception(exc: BaseException, provider: str = "") -> ExtractionError:
    """Map SDK/HTTP exceptions onto the transient/fatal taxonomy."""
    if isinstance(exc, ExtractionError):
        return exc

    # openai SDK (APITimeoutError subclasses APIConnectionError)
    if isinstance(exc, openai.APITimeoutError):
        return TransientBackendError(
            f"{provider} timeout: {exc}", user_message=user_message_for_status(None, timed_out=True), provider=provider
        )
    if isinstance(exc, openai.APIConnectionError):
        return TransientBackendError(f"{provider} connection error: {exc}", provider=provider)
    if isinstance(exc, openai.APIStatusError):
        return _from_status(exc.status_code, str(exc), _request_id_from_headers(exc.response.headers), provider)

    # requests
    if isinstance(exc, requests.Timeout):
        return TransientBackendError(
            f"{provider} timeout: {exc}", user_message=user_message_for_status(None, timed_out=True), provider=provider
        )
    if isinstance(exc, requests.ConnectionError):
        return TransientBackendError(f"{provider} connection error: {exc}", provider=provider)
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        body = (exc.response.text or "")[:500]
        return _from_status(
            exc.response.status_code, f"{exc} body={body}", _request_id_from_headers(exc.response.headers), provider
        )

    return FatalBackendError(f"{provider} unexpected error: {type(exc).__name__}: {exc}", provider=provider)


def _from_status(status: int, message: str, request_id: Optional[str], provider: str) -> ExtractionError:
    error_cls = TransientBackendError if (status in TRANSIENT_STATUSES or status >= 500) else FatalBackendError
    return error_cls(
        f"{provider} HTTP {status}: {message}",
        status=status,
        user_message=user_message_for_status(status),
        request_id=request_id,
        provider=provider,
    )


class ResilientTransport:
    def __init__(
        self,
        timeouts_ms: Sequence[int],
        provider: str = "",
        sleep: Callable[[float], None] = time.sleep,
        pause_range_s: tuple[float, float] = (0.5, 1.2),
    ) -> None:
        if not timeouts_ms:
            raise ValueError("timeout schedule must not be empty")
        self.timeouts_ms = tuple(timeouts_ms)
        self.provider = provider
        self._sleep = sleep
        self._pause_range_s = pause_range_s

    def send(
        self,
        fn: Callable[[float], T],
        timeouts_ms: Optional[Sequence[int]] = None,
        before_attempt: Optional[Callable[[], object]] = None,
    ) -> T:
        """Call ``fn(timeout_seconds)`` under the schedule; raise the classified last error.

        ``before_attempt`` runs ahead of every wire attempt, retries included
        (the orchestrator passes its rate limiter here).
        """
        schedule = tuple(timeouts_ms) if timeouts_ms else self.timeouts_ms
        last_error: Optional[ExtractionError] = None
        for attempt, timeout_ms in enumerate(schedule, start=1):
            if before_attempt is not None:
                before_attempt()
            started = time.monotonic()
            try:
                return fn(timeout_ms / 1000.0)
            except Exception as exc:  # classified below; unknown types become fatal
                error = classify_exception(exc, self.provider)
                elapsed_ms = int((time.monotonic() - started) * 1000)
                logging.warning(
                    f"{self.provider} attempt {attempt}/{len(schedule)} failed after {elapsed_ms}ms "
                    f"(timeout={timeout_ms}ms, status={error.status}, request_id={error.request_id})",
                    extra={
                        "step": "transport",
                        "status": "transient" if error.transient else "fatal",
                        "provider": self.provider,
                        "duration_ms": elapsed_ms,
                        "error": type(exc).__name__,
                    },
                )
                last_error = error
                if not error.transient:
                    if error is exc:
                        raise
                    raise error from exc
                if attempt < len(schedule):
                    self._sleep(random.uniform(*self._pause_range_s))
        assert last_error is not None
        raise last_error
