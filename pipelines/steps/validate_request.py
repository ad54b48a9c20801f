from __future__ import annotations

from models.orchestration_result import OrchestrationResult
from pipelines.runner import RunContext
from services.errors import RequestValidationError
from services.extraction_service import build_request


class ValidateRequest:
    def run(self, ctx: RunContext) -> RunContext:
        try:
            ctx.request = build_request(ctx.payload)
        except RequestValidationError as e:
            ctx.halt(
                OrchestrationResult.failure(
                    e.user_message, transient=False, http_status_hint=e.status_hint, error_detail=str(e)
                ),
                "invalid_request",
            )
        return ctx
