from __future__ import annotations

from typing import Any, Dict, Optional

from pipelines.runner import Pipeline, RunContext
from pipelines.steps import HoldCredits, RunExtraction, SettleCredits, ValidateRequest
from ports.ledger import CreditLedgerPort
from services.orchestrator import ExtractionOrchestrator, build_orchestrator


def build_pipeline(
    ledger: CreditLedgerPort,
    orchestrator: Optional[ExtractionOrchestrator] = None,
    cost: int = 1,
) -> Pipeline:
    """Caller-side extraction job: validate -> hold -> extract -> settle."""
    return Pipeline([
        ValidateRequest(),
        HoldCredits(ledger, cost=cost),
        RunExtraction(orchestrator or build_orchestrator()),
        SettleCredits(ledger),
    ])


def run_job(
    payload: Dict[str, Any],
    account_id: str,
    ledger: CreditLedgerPort,
    orchestrator: Optional[ExtractionOrchestrator] = None,
    cost: int = 1,
) -> RunContext:
    ctx = RunContext(payload=payload, account_id=account_id)
    return build_pipeline(ledger, orchestrator, cost=cost).run(ctx)
