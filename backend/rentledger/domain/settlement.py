# backend/rentledger/domain/settlement.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import LedgerValidationError
from .ledger import (
    CATEGORIES,
    PRIORITY_ORDER,
    balance_from_remaining,
    money,
    remaining_by_category,
)


@dataclass(frozen=True)
class Settlement:
    settlements: dict[str, float]
    total_settled: float
    remaining_advance: float
    new_balance_due: float


def compute_settlement(advance_balance: float, record: Any) -> Settlement:
    """
    Apply standing credit against a monthly record's outstanding balance.

    Credit goes penalty -> water -> garbage -> rent, and never more than
    min(advance_balance, balance_due) in total. Pure: calling it twice on the
    same inputs gives the same answer.
    """
    advance = float(advance_balance or 0.0)
    balance_due = float(getattr(record, "balance_due", 0.0) or 0.0)

    if balance_due <= 0:
        raise LedgerValidationError("nothing to settle: balance due is 0")
    if advance <= 0:
        raise LedgerValidationError("nothing to settle: no advance balance available")

    remaining = remaining_by_category(record)
    budget = min(advance, balance_due)

    settled = {c: 0.0 for c in CATEGORIES}
    for c in PRIORITY_ORDER:
        if budget <= 0:
            break
        if remaining[c] <= 0:
            continue
        take = min(budget, remaining[c])
        settled[c] = money(take)
        remaining[c] -= take
        budget -= take

    total = money(sum(settled.values()))
    if total <= 0:
        # stored balance is stale: no category actually has anything owing
        raise LedgerValidationError("nothing to settle: no category has an outstanding amount")
    return Settlement(
        settlements=settled,
        total_settled=total,
        remaining_advance=money(advance - total),
        new_balance_due=money(balance_from_remaining(remaining)),
    )
