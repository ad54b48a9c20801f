from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from models.extraction_request import ExtractionRequest, OptimizationMode, ProfileKind
from models.orchestration_result import OrchestrationResult
from services.errors import RequestValidationError
from services.orchestrator import ExtractionOrchestrator, build_orchestrator
from services.url_utils import clean_profile_url


_orchestrator: Optional[ExtractionOrchestrator] = None


def _default_orchestrator() -> ExtractionOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


def build_request(payload: Dict[str, Any]) -> ExtractionRequest:
    """Caller payload ``{html, url, isOwnProfile, optimizationMode?}`` -> ExtractionRequest.

    Raises RequestValidationError (400) for anything malformed.
    """
    if not isinstance(payload, dict):
        raise RequestValidationError("payload is not an object")
    html = payload.get("html")
    if not isinstance(html, str) or not html.strip():
        raise RequestValidationError("missing html", user_message="Missing HTML content.")
    url = clean_profile_url(payload.get("url"))
    if not url:
        raise RequestValidationError(
            f"not a profile url: {payload.get('url')!r}", user_message="Invalid profile URL."
        )
    try:
        mode = OptimizationMode.parse(payload.get("optimizationMode"))
    except ValueError:
        raise RequestValidationError(
            f"unknown optimizationMode: {payload.get('optimizationMode')!r}",
            user_message="Unknown optimization mode.",
        )
    own = payload.get("isOwnProfile", False)
    if own is None:
        own = False
    if not isinstance(own, bool):
        raise RequestValidationError(
            f"isOwnProfile must be a boolean, got {own!r}", user_message="Invalid isOwnProfile flag."
        )
    kind = ProfileKind.OWN if own else ProfileKind.TARGET
    return ExtractionRequest(html=html, source_url=url, profile_kind=kind, optimization_mode=mode)


def run_extraction(
    payload: Dict[str, Any], orchestrator: Optional[ExtractionOrchestrator] = None
) -> OrchestrationResult:
    try:
        request = build_request(payload)
    except RequestValidationError as e:
        logging.warning(f"Invalid extraction request: {e}", extra={"step": "validate_request", "status": "rejected"})
        return OrchestrationResult.failure(
            e.user_message, transient=False, http_status_hint=e.status_hint, error_detail=str(e)
        )
    logging.info(
        f"Extracting {request.profile_kind.value} profile {request.source_url}",
        extra={"step": "extract", "state": "start"},
    )
    return (orchestrator or _default_orchestrator()).run(request)


def extract_profile(payload: Dict[str, Any], orchestrator: Optional[ExtractionOrchestrator] = None) -> Dict[str, Any]:
    """Serialized extraction result for the caller (camelCase, unset fields omitted)."""
    return run_extraction(payload, orchestrator).to_payload()
