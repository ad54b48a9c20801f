from __future__ import annotations

from pipelines.runner import RunContext
from services.orchestrator import ExtractionOrchestrator


class RunExtraction:
    def __init__(self, orchestrator: ExtractionOrchestrator) -> None:
        self.orchestrator = orchestrator

    def run(self, ctx: RunContext) -> RunContext:
        assert ctx.request is not None, "ValidateRequest must run first"
        ctx.result = self.orchestrator.run(ctx.request)
        return ctx
