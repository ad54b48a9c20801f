from __future__ import annotations

from typing import Optional, Protocol


class CreditLedgerPort(Protocol):
    def hold(self, account_id: str, cost: int) -> Optional[str]:
        """Reserve ``cost`` credits; returns a hold token, or None when the balance is insufficient."""
        ...

    def commit(self, hold_token: str) -> None:
        ...

    def release(self, hold_token: str, reason: str) -> None:
        ...
