from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass
class _Hold:
    account_id: str
    cost: int


class InMemoryCreditLedger:
    """Process-local credit ledger: available balance = balance - active holds.

    An account has at most one active hold; a second ``hold`` while one is open
    is refused like an insufficient balance. Settled holds are recorded in
    ``history`` as ``(token, "committed" | "released:<reason>")``.
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None) -> None:
        self._balances: Dict[str, int] = dict(balances or {})
        self._holds: Dict[str, _Hold] = {}
        self._lock = threading.Lock()
        self.history: List[Tuple[str, str]] = []

    def balance(self, account_id: str) -> int:
        with self._lock:
            return self._balances.get(account_id, 0)

    def available(self, account_id: str) -> int:
        with self._lock:
            return self._available(account_id)

    def _available(self, account_id: str) -> int:
        held = sum(h.cost for h in self._holds.values() if h.account_id == account_id)
        return self._balances.get(account_id, 0) - held

    def hold(self, account_id: str, cost: int) -> Optional[str]:
        with self._lock:
            if any(h.account_id == account_id for h in self._holds.values()):
                logging.info(f"Hold refused for {account_id}: request already in progress", extra={"step": "ledger"})
                return None
            if self._available(account_id) < cost:
                logging.info(f"Hold refused for {account_id}: insufficient credits", extra={"step": "ledger"})
                return None
            token = uuid.uuid4().hex
            self._holds[token] = _Hold(account_id=account_id, cost=cost)
            return token

    def commit(self, hold_token: str) -> None:
        with self._lock:
            held = self._holds.pop(hold_token, None)
            if held is None:
                raise KeyError(f"Unknown or settled hold: {hold_token}")
            self._balances[held.account_id] = self._balances.get(held.account_id, 0) - held.cost
            self.history.append((hold_token, "committed"))

    def release(self, hold_token: str, reason: str) -> None:
        with self._lock:
            held = self._holds.pop(hold_token, None)
            if held is None:
                raise KeyError(f"Unknown or settled hold: {hold_token}")
            self.history.append((hold_token, f"released:{reason}"))
