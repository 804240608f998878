# backend/rentledger/services/payments.py
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..domain.allocation import (
    Allocation,
    ProposedPayment,
    apply_payment,
    preview_payment,
    validate_payment,
)
from ..domain.audit import audit_write
from ..domain.errors import LedgerConcurrencyError
from ..domain.history import HistoryEntry, build_monthly_history
from ..domain.ledger import (
    CATEGORIES,
    PAID_FIELDS,
    MonthSnapshot,
    StatusSummary,
    PaymentStatus,
    money,
    month_name,
    month_number,
    payment_status,
    summarize_statuses,
    total_due,
)
from ..domain.settlement import Settlement, compute_settlement
from ..models import MonthlyRecord, PaymentTransaction, Tenant
from .ownership import find_monthly_record, must_get_monthly_record, must_get_tenant

log = logging.getLogger("rentledger.payments")

# record columns written back from a snapshot
_WRITE_FIELDS = (
    "water_bill",
    "rent_paid",
    "water_paid",
    "garbage_paid",
    "deposit_paid",
    "penalties_paid",
    "balance_due",
    "advance_balance",
    "last_updated",
)


def _now() -> datetime:
    return datetime.utcnow()


def _check_version(row: MonthlyRecord, expected_version: Optional[int]) -> None:
    if expected_version is not None and int(row.version) != int(expected_version):
        raise LedgerConcurrencyError(
            f"monthly record changed (version {row.version}, expected {expected_version}); re-fetch and retry"
        )


def _flush(db: Session, *, commit: bool = False) -> None:
    try:
        if commit:
            db.commit()
        else:
            db.flush()
    except StaleDataError as e:
        db.rollback()
        raise LedgerConcurrencyError("monthly record was updated concurrently; re-fetch and retry") from e


# -----------------------------
# Monthly records
# -----------------------------
def ensure_monthly_record(db: Session, *, tenant: Tenant, month: str, year: int) -> MonthlyRecord:
    """
    Return the tenant's record for (month, year), creating it on first use.

    A new record snapshots the tenant's current rent, garbage fee and default
    water bill; those per-month amounts are authoritative from then on.
    """
    name = month_name(month_number(month))
    row = find_monthly_record(db, tenant_id=tenant.id, month=name, year=year)
    if row is not None:
        return row

    row = MonthlyRecord(
        tenant_id=tenant.id,
        month=name,
        year=int(year),
        monthly_rent=float(tenant.monthly_rent or 0.0),
        water_bill=float(tenant.default_water_bill or 0.0),
        garbage_bill=float(tenant.garbage_bill or 0.0),
        penalties=0.0,
        created_at=_now(),
    )
    row.balance_due = money(total_due(row))
    db.add(row)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise LedgerConcurrencyError(f"monthly record for {name} {year} was created concurrently; retry") from e

    log.info(
        "monthly record created",
        extra={"tenant_id": tenant.id, "month": name, "year": int(year), "record_id": row.id},
    )
    return row


def list_monthly_records(db: Session, *, tenant_id: int) -> list[MonthlyRecord]:
    must_get_tenant(db, tenant_id=tenant_id)
    q = (
        select(MonthlyRecord)
        .where(MonthlyRecord.tenant_id == int(tenant_id))
        .order_by(desc(MonthlyRecord.year), desc(MonthlyRecord.id))
    )
    return list(db.scalars(q).all())


# -----------------------------
# Payments
# -----------------------------
@dataclass(frozen=True)
class PaymentResult:
    record: MonthlyRecord
    transaction: Optional[PaymentTransaction]
    allocation: Allocation
    advance_generated: float
    credit_used: dict[str, float]
    tenant_credit: float


def preview(db: Session, *, tenant_id: int, month: str, year: int, payment: ProposedPayment) -> tuple[MonthSnapshot, Allocation]:
    tenant = must_get_tenant(db, tenant_id=tenant_id)
    row = find_monthly_record(db, tenant_id=tenant.id, month=month, year=year)
    if row is None:
        # nothing persisted on a preview; show what a fresh record would owe
        snap = MonthSnapshot(
            tenant_id=tenant.id,
            month=month_name(month_number(month)),
            year=int(year),
            monthly_rent=float(tenant.monthly_rent or 0.0),
            water_bill=float(tenant.default_water_bill or 0.0),
            garbage_bill=float(tenant.garbage_bill or 0.0),
        )
    else:
        snap = MonthSnapshot.from_row(row)
    return snap, preview_payment(snap, payment)


def record_payment(
    db: Session,
    *,
    tenant_id: int,
    month: str,
    year: int,
    payment: ProposedPayment,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
    audit_action: str = "payment.record",
) -> PaymentResult:
    """
    Read-modify-write of one monthly record for an incoming payment.

    The allocation runs on a snapshot of the row as read in this session;
    the write is guarded by the record's version column so a concurrent
    writer makes this call fail with LedgerConcurrencyError instead of
    double-applying funds.
    """
    now = now or _now()
    validate_payment(payment)
    tenant = must_get_tenant(db, tenant_id=tenant_id)
    row = ensure_monthly_record(db, tenant=tenant, month=month, year=year)
    _check_version(row, expected_version)

    before = row.model_dump()
    outcome = apply_payment(
        MonthSnapshot.from_row(row),
        payment,
        now=now,
        credit_available=float(tenant.credit_balance or 0.0),
    )

    for f in _WRITE_FIELDS:
        setattr(row, f, getattr(outcome.record, f))

    used = money(sum(outcome.credit_used.values()))
    tenant.credit_balance = money(float(tenant.credit_balance or 0.0) + outcome.advance_generated - used)

    txn: Optional[PaymentTransaction] = None
    if outcome.transaction is not None:
        txn = PaymentTransaction(**outcome.transaction.as_dict())
        row.transactions.append(txn)

    _flush(db)
    audit_write(
        db,
        action=audit_action,
        entity_type="MonthlyRecord",
        entity_id=str(row.id),
        before=before,
        after={
            **row.model_dump(),
            "transaction_id": txn.id if txn is not None else None,
            "advance_generated": outcome.advance_generated,
            "credit_used": outcome.credit_used,
        },
    )
    _flush(db, commit=True)
    db.refresh(row)

    log.info(
        "payment recorded",
        extra={
            "tenant_id": tenant.id,
            "month": row.month,
            "year": row.year,
            "record_id": row.id,
            "transaction_id": txn.id if txn is not None else None,
        },
    )
    if outcome.advance_generated > 0:
        log.info(
            "overpayment of %.2f moved to tenant credit",
            outcome.advance_generated,
            extra={"tenant_id": tenant.id, "month": row.month, "year": row.year},
        )

    return PaymentResult(
        record=row,
        transaction=txn,
        allocation=outcome.allocation,
        advance_generated=outcome.advance_generated,
        credit_used=outcome.credit_used,
        tenant_credit=float(tenant.credit_balance),
    )


def assess_penalty(
    db: Session,
    *,
    tenant_id: int,
    month: str,
    year: int,
    penalties: float,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> PaymentResult:
    """
    Set a month's penalty due (replacing any earlier assessment).

    Runs through the payment path with nothing paid, so the balance is
    recomputed and any credit held on the record is netted against it.
    """
    return record_payment(
        db,
        tenant_id=tenant_id,
        month=month,
        year=year,
        payment=ProposedPayment(update_penalties=True, penalties_due=penalties),
        expected_version=expected_version,
        now=now,
        audit_action="record.penalty_assessed",
    )


# -----------------------------
# Settlement
# -----------------------------
@dataclass(frozen=True)
class SettlementResult:
    record: MonthlyRecord
    settlement: Settlement
    # record id -> credit drawn from that record's advance
    drawn_from: dict[int, float]


def _draw_down_record_credit(db: Session, *, tenant_id: int, amount: float) -> dict[int, float]:
    """Lower advance_balance on the records holding the tenant's credit, oldest month first."""
    rows = db.scalars(
        select(MonthlyRecord).where(MonthlyRecord.tenant_id == int(tenant_id), MonthlyRecord.advance_balance > 0)
    ).all()

    left = float(amount)
    drawn: dict[int, float] = {}
    for r in sorted(rows, key=lambda r: (r.year, month_number(r.month))):
        if left <= 0:
            break
        take = min(left, float(r.advance_balance))
        r.advance_balance = money(float(r.advance_balance) - take)
        drawn[r.id] = money(take)
        left -= take
    return drawn


def settle_credit(
    db: Session,
    *,
    tenant_id: int,
    month: str,
    year: int,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SettlementResult:
    """Consume the tenant's standing credit against one month's balance due."""
    now = now or _now()
    tenant = must_get_tenant(db, tenant_id=tenant_id)
    row = must_get_monthly_record(db, tenant_id=tenant.id, month=month, year=year)
    _check_version(row, expected_version)

    st = compute_settlement(float(tenant.credit_balance or 0.0), MonthSnapshot.from_row(row))

    before = row.model_dump()
    for c in CATEGORIES:
        if st.settlements[c] > 0:
            field = PAID_FIELDS[c]
            setattr(row, field, money(float(getattr(row, field) or 0.0) + st.settlements[c]))
    row.balance_due = st.new_balance_due
    row.last_updated = now
    tenant.credit_balance = st.remaining_advance
    drawn = _draw_down_record_credit(db, tenant_id=tenant.id, amount=st.total_settled)

    audit_write(
        db,
        action="payment.settle",
        entity_type="MonthlyRecord",
        entity_id=str(row.id),
        before=before,
        after={
            **row.model_dump(),
            "settlements": st.settlements,
            "remaining_credit": st.remaining_advance,
            "drawn_from": drawn,
        },
    )
    _flush(db, commit=True)
    db.refresh(row)

    log.info(
        "credit of %.2f settled",
        st.total_settled,
        extra={"tenant_id": tenant.id, "month": row.month, "year": row.year, "record_id": row.id},
    )
    return SettlementResult(record=row, settlement=st, drawn_from=drawn)


# -----------------------------
# Read models
# -----------------------------
def tenant_history(db: Session, *, tenant_id: int, today: Optional[date] = None) -> list[HistoryEntry]:
    tenant = must_get_tenant(db, tenant_id=tenant_id)
    records = db.scalars(select(MonthlyRecord).where(MonthlyRecord.tenant_id == tenant.id)).all()
    return build_monthly_history(tenant, records, today=today)


def tenant_transactions(db: Session, *, tenant_id: int, limit: int = 500) -> tuple[list[PaymentTransaction], float]:
    must_get_tenant(db, tenant_id=tenant_id)
    rows = list(
        db.scalars(
            select(PaymentTransaction)
            .where(PaymentTransaction.tenant_id == int(tenant_id))
            .order_by(desc(PaymentTransaction.timestamp), desc(PaymentTransaction.id))
            .limit(limit)
        ).all()
    )
    total = money(sum(float(t.total_amount or 0.0) for t in rows))
    return rows, total


@dataclass(frozen=True)
class MonthOverviewRow:
    tenant: Tenant
    record: MonthlyRecord
    status: PaymentStatus


def month_overview(db: Session, *, month: str, year: int) -> tuple[list[MonthOverviewRow], StatusSummary]:
    """
    Every active tenant's record for one month, with payment status.

    Records are created lazily here for active tenants who had moved in by
    the end of that month.
    """
    n = month_number(month)
    month_end = date(int(year), n, calendar.monthrange(int(year), n)[1])

    tenants = db.scalars(
        select(Tenant).where(Tenant.status == "active", Tenant.entry_date <= month_end).order_by(Tenant.id)
    ).all()

    rows: list[MonthOverviewRow] = []
    for t in tenants:
        r = ensure_monthly_record(db, tenant=t, month=month, year=year)
        rows.append(MonthOverviewRow(tenant=t, record=r, status=payment_status(r)))
    db.commit()

    return rows, summarize_statuses(r.record for r in rows)
