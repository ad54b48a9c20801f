from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from models.extraction_request import ExtractionRequest
from models.orchestration_result import OrchestrationResult
from utils.logging_setup import init_logging


@dataclass
class RunContext:
    payload: Dict[str, Any] = field(default_factory=dict)
    account_id: Optional[str] = None
    request: Optional[ExtractionRequest] = None
    hold_token: Optional[str] = None
    result: Optional[OrchestrationResult] = None
    halted: bool = False
    meta: dict = field(default_factory=dict)

    def halt(self, result: OrchestrationResult, outcome: str) -> None:
        self.result = result
        self.meta["outcome"] = outcome
        self.halted = True


class Step(Protocol):
    def run(self, ctx: RunContext) -> RunContext:
        ...


class Pipeline:
    def __init__(self, steps: List[Step]):
        self.steps = steps

    def run(self, ctx: RunContext) -> RunContext:
        # Make logging idempotent for any direct runner use
        init_logging()
        for step in self.steps:
            ctx = step.run(ctx)
            if ctx.halted:
                break
        return ctx
