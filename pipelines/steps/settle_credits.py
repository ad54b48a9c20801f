from __future__ import annotations

import logging

from pipelines.runner import RunContext
from ports.ledger import CreditLedgerPort


class SettleCredits:
    """Commit the hold only on a successful extraction; release it otherwise."""

    def __init__(self, ledger: CreditLedgerPort) -> None:
        self.ledger = ledger

    def run(self, ctx: RunContext) -> RunContext:
        if not ctx.hold_token:
            return ctx
        result = ctx.result
        if result is not None and result.success:
            self.ledger.commit(ctx.hold_token)
            ctx.meta["outcome"] = "committed"
        else:
            reason = "transient" if (result is not None and result.transient) else "failed"
            self.ledger.release(ctx.hold_token, reason)
            ctx.meta["outcome"] = f"released:{reason}"
        logging.info(f"Credits settled: {ctx.meta['outcome']}", extra={"step": "settle_credits"})
        ctx.hold_token = None
        return ctx
