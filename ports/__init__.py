from .llm import BackendClientPort
from .ledger import CreditLedgerPort

__all__ = [
    "BackendClientPort",
    "CreditLedgerPort",
]
