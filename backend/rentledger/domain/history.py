# backend/rentledger/domain/history.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from ..config import settings
from .ledger import as_date, month_key, month_name, month_number

# display-only; never persisted
STATUS_PAID = "paid"
STATUS_PARTIAL = "partial"
STATUS_UNPAID = "unpaid"
STATUS_DEPOSIT = "deposit"


@dataclass(frozen=True)
class HistoryEntry:
    month: str  # "March 2026"
    month_key: str  # "2026-03"
    year: int
    expected_rent: float
    rent_paid: float
    water_paid: float
    garbage_paid: float
    deposit_paid: float
    penalty_paid: float
    total_paid: float
    status: str
    has_record: bool
    payments: list[Any] = field(default_factory=list)


def rent_status(*, rent_paid: float, monthly_rent: float, deposit_paid: float) -> str:
    if deposit_paid > 0:
        return STATUS_DEPOSIT
    if rent_paid >= monthly_rent:
        return STATUS_PAID
    if rent_paid > 0:
        return STATUS_PARTIAL
    return STATUS_UNPAID


def _iter_months(start: date, end: date):
    y, m = start.year, start.month
    while (y, m) <= (end.year, end.month):
        yield y, m
        m += 1
        if m > 12:
            y, m = y + 1, 1


def _entry_from_record(y: int, m: int, r: Any) -> HistoryEntry:
    rent_paid = float(getattr(r, "rent_paid", 0.0) or 0.0)
    water_paid = float(getattr(r, "water_paid", 0.0) or 0.0)
    garbage_paid = float(getattr(r, "garbage_paid", 0.0) or 0.0)
    deposit_paid = float(getattr(r, "deposit_paid", 0.0) or 0.0)
    penalty_paid = float(getattr(r, "penalties_paid", 0.0) or 0.0)
    monthly_rent = float(getattr(r, "monthly_rent", 0.0) or 0.0)

    return HistoryEntry(
        month=f"{month_name(m)} {y}",
        month_key=month_key(y, m),
        year=y,
        expected_rent=monthly_rent,
        rent_paid=rent_paid,
        water_paid=water_paid,
        garbage_paid=garbage_paid,
        deposit_paid=deposit_paid,
        penalty_paid=penalty_paid,
        total_paid=rent_paid + water_paid + garbage_paid + penalty_paid,
        status=rent_status(rent_paid=rent_paid, monthly_rent=monthly_rent, deposit_paid=deposit_paid),
        has_record=True,
        payments=list(getattr(r, "transactions", None) or []),
    )


def _gap_entry(y: int, m: int, monthly_rent: float) -> HistoryEntry:
    # Missing months render as owing the tenant's current rent rather than
    # disappearing from the timeline.
    return HistoryEntry(
        month=f"{month_name(m)} {y}",
        month_key=month_key(y, m),
        year=y,
        expected_rent=monthly_rent,
        rent_paid=0.0,
        water_paid=0.0,
        garbage_paid=0.0,
        deposit_paid=0.0,
        penalty_paid=0.0,
        total_paid=0.0,
        status=STATUS_UNPAID,
        has_record=False,
    )


def build_monthly_history(
    tenant: Any,
    records: Iterable[Any],
    *,
    today: Optional[date] = None,
    max_months: Optional[int] = None,
) -> list[HistoryEntry]:
    """
    One entry per calendar month from the tenant's entry month to the current
    month inclusive, most recent first.

    `tenant` needs entry_date and monthly_rent; `records` need month (name),
    year and the due/paid columns. Works on ORM rows and snapshots alike.
    """
    entry = as_date(getattr(tenant, "entry_date", None))
    end = today or date.today()
    if entry is None or entry > end:
        return []

    by_key: dict[str, Any] = {}
    for r in records:
        by_key[month_key(int(getattr(r, "year")), month_number(str(getattr(r, "month"))))] = r

    current_rent = float(getattr(tenant, "monthly_rent", 0.0) or 0.0)
    limit = int(max_months if max_months is not None else settings.history_max_months)

    history: list[HistoryEntry] = []
    for y, m in _iter_months(entry, end):
        r = by_key.get(month_key(y, m))
        history.append(_entry_from_record(y, m, r) if r is not None else _gap_entry(y, m, current_rent))

    history.reverse()
    return history[:limit]
