# backend/rentledger/domain/ledger.py
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Optional

from .errors import LedgerValidationError

# Due categories. Deposit is tracked on the record but never takes part in
# balance arithmetic.
CATEGORIES: tuple[str, ...] = ("rent", "water", "garbage", "penalty")

# Order in which pooled excess (and standing credit) is applied.
PRIORITY_ORDER: tuple[str, ...] = ("penalty", "water", "garbage", "rent")

DUE_FIELDS: dict[str, str] = {
    "rent": "monthly_rent",
    "water": "water_bill",
    "garbage": "garbage_bill",
    "penalty": "penalties",
}

PAID_FIELDS: dict[str, str] = {
    "rent": "rent_paid",
    "water": "water_paid",
    "garbage": "garbage_paid",
    "penalty": "penalties_paid",
}

PAYMENT_METHODS: dict[str, str] = {
    "mpesa": "M-Pesa",
    "equity": "Equity Bank",
    "kcb": "KCB Bank",
    "cooperative": "Cooperative Bank",
    "family_bank": "Family Bank",
    "bank": "Bank Transfer",
    "cash": "Cash",
}

MONTHS: tuple[str, ...] = tuple(calendar.month_name[1:])


def _num(v: Any) -> float:
    return float(v or 0.0)


def money(v: Any) -> float:
    return round(_num(v), 2)


# -----------------------------
# Month helpers
# -----------------------------
def month_number(name: str) -> int:
    """'March' / 'march' / 'Mar' -> 3."""
    s = (name or "").strip().lower()
    for i, m in enumerate(MONTHS, start=1):
        if s == m.lower() or (len(s) >= 3 and m.lower().startswith(s)):
            return i
    raise LedgerValidationError(f"unknown month: {name!r}")


def month_name(n: int) -> str:
    if not 1 <= int(n) <= 12:
        raise LedgerValidationError(f"month number out of range: {n}")
    return MONTHS[int(n) - 1]


def month_key(year: int, month: int | str) -> str:
    m = month_number(month) if isinstance(month, str) else int(month)
    return f"{int(year)}-{m:02d}"


def as_date(v: Any) -> Optional[date]:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    return date.fromisoformat(str(v)[:10])


# -----------------------------
# Snapshots
# -----------------------------
@dataclass(frozen=True)
class TenantSnapshot:
    tenant_id: int
    monthly_rent: float
    garbage_bill: float
    entry_date: date
    leaving_date: Optional[date] = None
    expenses: float = 0.0
    credit_balance: float = 0.0
    default_water_bill: float = 0.0

    def __post_init__(self) -> None:
        if self.monthly_rent < 0 or self.garbage_bill < 0:
            raise LedgerValidationError("monthly_rent and garbage_bill must be >= 0")


@dataclass(frozen=True)
class MonthSnapshot:
    """
    Obligation/payment state of one tenant for one calendar month.

    Due amounts are the per-month snapshot taken when the record was created
    and are authoritative over the tenant's current rent/garbage fee.
    """

    tenant_id: int
    month: str
    year: int

    monthly_rent: float = 0.0
    water_bill: float = 0.0
    garbage_bill: float = 0.0
    penalties: float = 0.0

    rent_paid: float = 0.0
    water_paid: float = 0.0
    garbage_paid: float = 0.0
    deposit_paid: float = 0.0
    penalties_paid: float = 0.0

    balance_due: float = 0.0
    advance_balance: float = 0.0

    version: int = 1
    last_updated: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> "MonthSnapshot":
        return cls(
            tenant_id=int(getattr(row, "tenant_id")),
            month=str(getattr(row, "month")),
            year=int(getattr(row, "year")),
            monthly_rent=_num(getattr(row, "monthly_rent", 0.0)),
            water_bill=_num(getattr(row, "water_bill", 0.0)),
            garbage_bill=_num(getattr(row, "garbage_bill", 0.0)),
            penalties=_num(getattr(row, "penalties", 0.0)),
            rent_paid=_num(getattr(row, "rent_paid", 0.0)),
            water_paid=_num(getattr(row, "water_paid", 0.0)),
            garbage_paid=_num(getattr(row, "garbage_paid", 0.0)),
            deposit_paid=_num(getattr(row, "deposit_paid", 0.0)),
            penalties_paid=_num(getattr(row, "penalties_paid", 0.0)),
            balance_due=_num(getattr(row, "balance_due", 0.0)),
            advance_balance=_num(getattr(row, "advance_balance", 0.0)),
            version=int(getattr(row, "version", 1) or 1),
            last_updated=getattr(row, "last_updated", None),
        )


@dataclass(frozen=True)
class TransactionDraft:
    """A payment event ready to be appended to its monthly record."""

    tenant_id: int
    month: str
    year: int
    rent: float
    water: float
    garbage: float
    penalty: float
    deposit: float
    advance: float
    total_amount: float
    method: str
    reference: str
    txn_date: date
    timestamp: datetime
    notes: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "month": self.month,
            "year": self.year,
            "rent": self.rent,
            "water": self.water,
            "garbage": self.garbage,
            "penalty": self.penalty,
            "deposit": self.deposit,
            "advance": self.advance,
            "total_amount": self.total_amount,
            "method": self.method,
            "reference": self.reference,
            "txn_date": self.txn_date,
            "timestamp": self.timestamp,
            "notes": self.notes,
        }


# -----------------------------
# Per-category views
# -----------------------------
def due_by_category(record: Any) -> dict[str, float]:
    return {c: _num(getattr(record, DUE_FIELDS[c], 0.0)) for c in CATEGORIES}


def paid_by_category(record: Any) -> dict[str, float]:
    return {c: _num(getattr(record, PAID_FIELDS[c], 0.0)) for c in CATEGORIES}


def remaining_by_category(record: Any) -> dict[str, float]:
    """
    due - paid per category, NOT clamped.

    A category that is already over-paid shows a negative remaining; callers
    only clamp at the final balance step.
    """
    due = due_by_category(record)
    paid = paid_by_category(record)
    return {c: due[c] - paid[c] for c in CATEGORIES}


def balance_from_remaining(remaining: dict[str, float]) -> float:
    return max(0.0, sum(remaining.values()))


def total_due(record: Any) -> float:
    return sum(due_by_category(record).values())


def total_paid(record: Any) -> float:
    return sum(paid_by_category(record).values())


# -----------------------------
# Predicates
# -----------------------------
def is_fully_paid(record: Any) -> bool:
    due = due_by_category(record)
    paid = paid_by_category(record)
    return all(paid[c] >= due[c] for c in CATEGORIES)


def is_partially_paid(record: Any) -> bool:
    paid = total_paid(record)
    return 0 < paid < total_due(record)


def is_unpaid(record: Any) -> bool:
    return total_paid(record) == 0


def is_deposit_month(record: Any) -> bool:
    return _num(getattr(record, "deposit_paid", 0.0)) > 0


@dataclass(frozen=True)
class PaymentStatus:
    is_paid_full: bool
    is_partial_paid: bool
    is_not_paid: bool
    total_due: float
    total_applied: float
    advance_this_month: float
    balance_due: float


def payment_status(record: Any) -> PaymentStatus:
    """Month-overview status of one record (all categories, deposit excluded)."""
    due = total_due(record)
    applied = total_paid(record)

    full = applied >= due
    stored_balance = _num(getattr(record, "balance_due", 0.0))
    return PaymentStatus(
        is_paid_full=full,
        is_partial_paid=applied > 0 and not full,
        is_not_paid=applied == 0,
        total_due=money(due),
        total_applied=money(applied),
        advance_this_month=money(getattr(record, "advance_balance", 0.0)),
        balance_due=money(stored_balance or max(0.0, due - applied)),
    )


@dataclass(frozen=True)
class StatusSummary:
    total: int
    fully_paid: int
    partial_paid: int
    not_paid: int
    total_due: float = 0.0
    total_collected: float = 0.0
    total_outstanding: float = 0.0


def summarize_statuses(records: Iterable[Any]) -> StatusSummary:
    fully = partial = not_paid = n = 0
    due_sum = collected = outstanding = 0.0
    for r in records:
        n += 1
        st = payment_status(r)
        if st.is_paid_full:
            fully += 1
        elif st.is_partial_paid:
            partial += 1
        elif st.is_not_paid:
            not_paid += 1
        due_sum += st.total_due
        collected += st.total_applied
        outstanding += st.balance_due
    return StatusSummary(
        total=n,
        fully_paid=fully,
        partial_paid=partial,
        not_paid=not_paid,
        total_due=money(due_sum),
        total_collected=money(collected),
        total_outstanding=money(outstanding),
    )
