from __future__ import annotations

from typing import Optional


TRANSIENT_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class ExtractionError(Exception):
    """Base for every failure the extraction core knows how to classify.

    ``user_message`` is what the caller may show; ``str(err)`` is the
    technical detail and stays in logs.
    """

    transient: bool = False
    default_user_message: str = "Failed to process profile. Please try again later."
    default_status_hint: int = 502

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        user_message: Optional[str] = None,
        status_hint: Optional[int] = None,
        request_id: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.user_message = user_message or self.default_user_message
        self.status_hint = status_hint or self.default_status_hint
        self.request_id = request_id
        self.provider = provider


class RequestValidationError(ExtractionError):
    """Oversized or malformed input; rejected before any backend call."""

    default_user_message = "The profile page could not be processed."
    default_status_hint = 400


class TransientBackendError(ExtractionError):
    """Timeout, connection failure, 408/429/5xx or empty output: worth one more try."""

    transient = True
    default_user_message = "The extraction service is busy. Please try again in a moment."
    default_status_hint = 503


class FatalBackendError(ExtractionError):
    """Auth failures, rejected requests, missing credentials: retrying cannot help."""

    default_user_message = "Profile extraction is temporarily unavailable."
    default_status_hint = 502


def user_message_for_status(status: Optional[int], *, timed_out: bool = False) -> str:
    """Short, non-technical text for a backend failure."""
    if timed_out:
        return "Processing timeout. Please try again."
    if status == 429:
        return "Rate limit exceeded. Please wait a moment and try again."
    if status in (503, 502, 500):
        return "The extraction service is busy. Please try again in a moment."
    if status in (504, 408):
        return "Request timeout. Please try again."
    if status in (401, 403):
        return "Profile extraction is temporarily unavailable."
    if status == 400:
        return "The profile could not be processed. Please try again."
    return ExtractionError.default_user_message
