# backend/rentledger/domain/allocation.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..config import settings
from .errors import LedgerValidationError
from .ledger import (
    CATEGORIES,
    PAID_FIELDS,
    PAYMENT_METHODS,
    PRIORITY_ORDER,
    MonthSnapshot,
    TransactionDraft,
    balance_from_remaining,
    due_by_category,
    money,
    paid_by_category,
)
from .settlement import compute_settlement


@dataclass(frozen=True)
class ProposedPayment:
    rent: float = 0.0
    water: float = 0.0
    garbage: float = 0.0
    penalty: float = 0.0
    deposit: float = 0.0

    method: str = settings.default_payment_method
    reference: str = ""
    notes: str = ""

    # replace the month's water due before allocating
    update_water_bill: bool = False
    water_bill: Optional[float] = None

    # assess (replace) the month's penalty due before allocating
    update_penalties: bool = False
    penalties_due: Optional[float] = None

    def category_amounts(self) -> dict[str, float]:
        return {c: float(getattr(self, c) or 0.0) for c in CATEGORIES}

    @property
    def category_total(self) -> float:
        return sum(self.category_amounts().values())

    @property
    def total(self) -> float:
        return self.category_total + float(self.deposit or 0.0)


@dataclass(frozen=True)
class Allocation:
    effectives: dict[str, float]
    remaining: dict[str, float]
    excess: float
    new_balance_due: float
    advance_amount: float

    @property
    def effective_total(self) -> float:
        return sum(self.effectives.values())


def allocate(
    due: dict[str, float],
    already_paid: dict[str, float],
    proposed: dict[str, float],
) -> Allocation:
    """
    Split a proposed payment across the due categories.

    1. each category first takes up to its own remaining due
    2. whatever a category could not absorb is pooled as excess
    3. the pool is re-distributed penalty -> water -> garbage -> rent, pass
       after pass, until it is empty or nothing is left owing
    4. any pool left over becomes advance (credit)

    `excess` on the result is the pool size after step 2; `advance_amount`
    is what survived step 3.
    """
    remaining = {c: float(due.get(c, 0.0)) - float(already_paid.get(c, 0.0)) for c in CATEGORIES}
    effectives = {c: 0.0 for c in CATEGORIES}
    excess = 0.0

    for c in CATEGORIES:
        amt = float(proposed.get(c, 0.0) or 0.0)
        # an already over-paid category absorbs nothing and gives nothing back
        eff = max(0.0, min(amt, remaining[c]))
        effectives[c] = eff
        excess += amt - eff
        remaining[c] -= eff

    pooled = excess

    while excess > 0:
        allocated = False
        for c in PRIORITY_ORDER:
            if remaining[c] > 0 and excess > 0:
                add = min(excess, remaining[c])
                effectives[c] += add
                remaining[c] -= add
                excess -= add
                allocated = True
        if not allocated:
            break

    return Allocation(
        effectives=effectives,
        remaining=remaining,
        excess=pooled,
        new_balance_due=balance_from_remaining(remaining),
        advance_amount=max(0.0, excess),
    )


def validate_payment(payment: ProposedPayment) -> None:
    amounts = payment.category_amounts()
    amounts["deposit"] = float(payment.deposit or 0.0)
    negative = sorted(k for k, v in amounts.items() if v < 0)
    if negative:
        raise LedgerValidationError(f"payment amounts must be >= 0: {', '.join(negative)}")

    if payment.update_water_bill:
        if payment.water_bill is None or float(payment.water_bill) < 0:
            raise LedgerValidationError("water_bill must be >= 0 when update_water_bill is set")

    if payment.update_penalties:
        if payment.penalties_due is None or float(payment.penalties_due) < 0:
            raise LedgerValidationError("penalties_due must be >= 0 when update_penalties is set")

    if payment.total == 0 and not (payment.update_water_bill or payment.update_penalties):
        raise LedgerValidationError("no payment, water bill or penalty update entered")

    method = (payment.method or "").strip().lower()
    if method not in PAYMENT_METHODS:
        raise LedgerValidationError(f"unknown payment method: {payment.method!r}")

    if method != "cash" and not (payment.reference or "").strip() and payment.total > 0:
        raise LedgerValidationError("payment reference is required for non-cash payments")


def resolve_reference(method: str, reference: str, now: datetime) -> str:
    if (method or "").strip().lower() == "cash":
        ms = str(int(now.timestamp() * 1000))
        return f"{settings.cash_reference_prefix}-{ms[-8:]}"
    return (reference or "").strip()


@dataclass(frozen=True)
class PaymentOutcome:
    record: MonthSnapshot
    allocation: Allocation
    transaction: Optional[TransactionDraft]
    # credit generated by this payment (goes onto the tenant's standing balance)
    advance_generated: float
    # standing credit already held on the record that was used to cover a
    # balance re-opened by a water bill update
    credit_used: dict[str, float]


def due_after_updates(record: MonthSnapshot, payment: ProposedPayment) -> dict[str, float]:
    due = due_by_category(record)
    if payment.update_water_bill and payment.water_bill is not None:
        due["water"] = float(payment.water_bill)
    if payment.update_penalties and payment.penalties_due is not None:
        due["penalty"] = float(payment.penalties_due)
    return due


def preview_payment(record: MonthSnapshot, payment: ProposedPayment) -> Allocation:
    """Allocation only. Used by the payment dialog before anything is saved."""
    due = due_after_updates(record, payment)
    return allocate(due, paid_by_category(record), payment.category_amounts())


def apply_payment(
    record: MonthSnapshot,
    payment: ProposedPayment,
    *,
    now: datetime,
    credit_available: Optional[float] = None,
) -> PaymentOutcome:
    """
    Validate and apply one payment to a fresh snapshot of a monthly record.

    Returns the new snapshot to persist and the transaction to append; the
    input snapshot is not modified. Rejections are raised before any
    computation that could leave partial effects.

    `credit_available` is the tenant's standing credit before this payment.
    The record's own advance can never be spent beyond it, since part of it
    may already have been settled against other months.
    """
    validate_payment(payment)

    alloc = preview_payment(record, payment)
    eff = alloc.effectives

    changes: dict[str, float] = {
        PAID_FIELDS[c]: money(getattr(record, PAID_FIELDS[c]) + eff[c]) for c in CATEGORIES
    }
    changes["deposit_paid"] = money(record.deposit_paid + float(payment.deposit or 0.0))
    if payment.update_water_bill and payment.water_bill is not None:
        changes["water_bill"] = money(payment.water_bill)
    if payment.update_penalties and payment.penalties_due is not None:
        changes["penalties"] = money(payment.penalties_due)

    advance = money(alloc.advance_amount)
    updated = dataclasses.replace(
        record,
        **changes,
        balance_due=money(alloc.new_balance_due),
        advance_balance=money(record.advance_balance + advance),
        last_updated=now,
    )

    if credit_available is not None:
        spendable = money(max(0.0, float(credit_available)) + advance)
        if updated.advance_balance > spendable:
            updated = dataclasses.replace(updated, advance_balance=spendable)

    # A raised water bill or a new penalty can re-open a balance on a month
    # that still holds credit; the two are netted so the record never owes
    # and holds credit at the same time.
    credit_used: dict[str, float] = {}
    if updated.balance_due > 0 and updated.advance_balance > 0:
        st = compute_settlement(updated.advance_balance, updated)
        credit_used = {c: v for c, v in st.settlements.items() if v > 0}
        updated = dataclasses.replace(
            updated,
            **{PAID_FIELDS[c]: money(getattr(updated, PAID_FIELDS[c]) + v) for c, v in credit_used.items()},
            balance_due=money(st.new_balance_due),
            advance_balance=money(st.remaining_advance),
        )

    txn: Optional[TransactionDraft] = None
    if payment.total > 0:
        method = payment.method.strip().lower()
        txn = TransactionDraft(
            tenant_id=record.tenant_id,
            month=record.month,
            year=record.year,
            rent=money(eff["rent"]),
            water=money(eff["water"]),
            garbage=money(eff["garbage"]),
            penalty=money(eff["penalty"]),
            deposit=money(payment.deposit),
            advance=advance,
            total_amount=money(payment.total),
            method=method,
            reference=resolve_reference(method, payment.reference, now),
            txn_date=now.date(),
            timestamp=now,
            notes=payment.notes or "",
        )

    return PaymentOutcome(
        record=updated,
        allocation=alloc,
        transaction=txn,
        advance_generated=advance,
        credit_used=credit_used,
    )
