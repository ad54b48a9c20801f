from __future__ import annotations

import logging

from models.orchestration_result import OrchestrationResult
from pipelines.runner import RunContext
from ports.ledger import CreditLedgerPort


INSUFFICIENT_CREDITS_MESSAGE = "Insufficient credits."


class HoldCredits:
    """Reserve the extraction cost before any backend call is made."""

    def __init__(self, ledger: CreditLedgerPort, cost: int = 1) -> None:
        self.ledger = ledger
        self.cost = cost

    def run(self, ctx: RunContext) -> RunContext:
        token = self.ledger.hold(ctx.account_id, self.cost) if ctx.account_id else None
        if token is None:
            logging.info(
                f"No credit hold for account={ctx.account_id}",
                extra={"step": "hold_credits", "status": "insufficient"},
            )
            ctx.halt(
                OrchestrationResult.failure(
                    INSUFFICIENT_CREDITS_MESSAGE,
                    transient=False,
                    http_status_hint=402,
                    error_detail=f"hold refused for account={ctx.account_id}",
                ),
                "insufficient_credits",
            )
            return ctx
        ctx.hold_token = token
        ctx.meta["credits_held"] = self.cost
        return ctx
