# backend/rentledger/domain/__init__.py
from .allocation import Allocation, ProposedPayment, allocate, apply_payment, preview_payment
from .errors import LedgerConcurrencyError, LedgerError, LedgerNotFoundError, LedgerValidationError
from .history import HistoryEntry, build_monthly_history
from .settlement import Settlement, compute_settlement

__all__ = [
    "Allocation",
    "ProposedPayment",
    "allocate",
    "apply_payment",
    "preview_payment",
    "Settlement",
    "compute_settlement",
    "HistoryEntry",
    "build_monthly_history",
    "LedgerError",
    "LedgerValidationError",
    "LedgerNotFoundError",
    "LedgerConcurrencyError",
]
