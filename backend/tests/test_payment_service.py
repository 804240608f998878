# backend/tests/test_payment_service.py
from __future__ import annotations

from datetime import date, datetime

import pytest
from sqlalchemy import select

from rentledger.db import SessionLocal
from rentledger.domain.allocation import ProposedPayment
from rentledger.domain.errors import LedgerConcurrencyError, LedgerNotFoundError, LedgerValidationError
from rentledger.models import AuditEvent, MonthlyRecord, Tenant
from rentledger.services.ownership import find_monthly_record
from rentledger.services.payments import (
    assess_penalty,
    ensure_monthly_record,
    month_overview,
    record_payment,
    settle_credit,
    tenant_history,
    tenant_transactions,
)

NOW = datetime(2026, 10, 18, 9, 0, 0)


def _tenant(db, **kw) -> Tenant:
    base = dict(
        full_name="Wanjiku Kamau",
        house_number="B4",
        building_name="Riverside",
        monthly_rent=1000.0,
        garbage_bill=150.0,
        default_water_bill=500.0,
        entry_date=date(2026, 8, 1),
        status="active",
    )
    base.update(kw)
    t = Tenant(**base)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


def _mpesa(**amounts) -> ProposedPayment:
    return ProposedPayment(method="mpesa", reference="QK7H2", **amounts)


def test_payment_creates_record_and_transaction(db):
    t = _tenant(db)
    res = record_payment(
        db,
        tenant_id=t.id,
        month="october",
        year=2026,
        payment=_mpesa(rent=1000, water=500, garbage=150),
        now=NOW,
    )

    assert res.record.month == "October"
    assert res.record.monthly_rent == 1000.0
    assert res.record.rent_paid == 1000.0
    assert res.record.balance_due == 0.0
    assert res.transaction is not None
    assert res.transaction.total_amount == 1650.0
    assert res.transaction.reference == "QK7H2"
    assert len(res.record.transactions) == 1
    assert res.tenant_credit == 0.0

    actions = [a.action for a in db.scalars(select(AuditEvent)).all()]
    assert "payment.record" in actions


def test_record_keeps_its_own_rent_snapshot(db):
    t = _tenant(db)
    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=500), now=NOW)

    t.monthly_rent = 1400.0
    db.commit()

    res = record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=500), now=NOW)
    assert res.record.monthly_rent == 1000.0
    assert res.record.rent_paid == 1000.0
    assert len(res.record.transactions) == 2


def test_overpayment_becomes_credit_and_settles_next_month(db):
    t = _tenant(db)
    res = record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=1800), now=NOW)
    assert res.advance_generated == 150.0
    assert res.record.advance_balance == 150.0
    assert res.tenant_credit == 150.0

    ensure_monthly_record(db, tenant=t, month="November", year=2026)
    db.commit()

    out = settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)
    assert out.settlement.settlements["water"] == 150.0
    assert out.settlement.remaining_advance == 0.0
    assert out.record.water_paid == 150.0
    assert out.record.balance_due == 1500.0

    db.refresh(t)
    assert t.credit_balance == 0.0

    # nothing left to apply
    with pytest.raises(LedgerValidationError):
        settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)


def test_rejected_payment_leaves_no_trace(db):
    t = _tenant(db)
    with pytest.raises(LedgerValidationError):
        record_payment(db, tenant_id=t.id, month="October", year=2026, payment=ProposedPayment(method="cash"), now=NOW)
    with pytest.raises(LedgerValidationError):
        record_payment(
            db, tenant_id=t.id, month="October", year=2026, payment=ProposedPayment(rent=100, method="equity"), now=NOW
        )
    assert find_monthly_record(db, tenant_id=t.id, month="October", year=2026) is None


def test_water_bill_update_without_payment(db):
    t = _tenant(db)
    res = record_payment(
        db,
        tenant_id=t.id,
        month="October",
        year=2026,
        payment=ProposedPayment(update_water_bill=True, water_bill=320.0),
        now=NOW,
    )
    assert res.transaction is None
    assert res.record.water_bill == 320.0
    assert res.record.balance_due == 1470.0
    assert res.record.transactions == []


def test_missing_tenant_or_record(db):
    with pytest.raises(LedgerNotFoundError):
        record_payment(db, tenant_id=999, month="October", year=2026, payment=_mpesa(rent=10), now=NOW)

    t = _tenant(db, credit_balance=200.0)
    with pytest.raises(LedgerNotFoundError):
        settle_credit(db, tenant_id=t.id, month="December", year=2026, now=NOW)


def test_stale_expected_version_is_refused(db):
    t = _tenant(db)
    first = record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=300), now=NOW)
    seen = first.record.version

    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=300), now=NOW)

    with pytest.raises(LedgerConcurrencyError):
        record_payment(
            db,
            tenant_id=t.id,
            month="October",
            year=2026,
            payment=_mpesa(rent=300),
            expected_version=seen,
            now=NOW,
        )

    row = find_monthly_record(db, tenant_id=t.id, month="October", year=2026)
    assert row.rent_paid == 600.0


def test_concurrent_writer_is_detected(db):
    t = _tenant(db)
    first = record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=100), now=NOW)
    record_id = first.record.id

    other = SessionLocal()
    try:
        # second session holds the row as it was before the next write
        assert other.get(MonthlyRecord, record_id).rent_paid == 100.0

        record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=200), now=NOW)

        with pytest.raises(LedgerConcurrencyError):
            record_payment(other, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=200), now=NOW)
    finally:
        other.close()

    db.expire_all()
    assert db.get(MonthlyRecord, record_id).rent_paid == 300.0


def test_history_and_transactions(db):
    t = _tenant(db)
    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=1000), now=NOW)
    record_payment(db, tenant_id=t.id, month="August", year=2026, payment=_mpesa(rent=400, deposit=2000), now=NOW)

    hist = tenant_history(db, tenant_id=t.id, today=date(2026, 10, 18))
    assert [(h.month, h.status) for h in hist] == [
        ("October 2026", "paid"),
        ("September 2026", "unpaid"),
        ("August 2026", "deposit"),
    ]
    assert len(hist[0].payments) == 1

    rows, total = tenant_transactions(db, tenant_id=t.id)
    assert len(rows) == 2
    assert total == 3400.0


def test_month_overview_creates_records_for_active_tenants(db):
    paid = _tenant(db, full_name="A")
    _tenant(db, full_name="B")
    _tenant(db, full_name="Gone", status="left")
    _tenant(db, full_name="Later", entry_date=date(2026, 12, 1))

    record_payment(db, tenant_id=paid.id, month="October", year=2026, payment=_mpesa(rent=1000, water=500, garbage=150), now=NOW)

    rows, summary = month_overview(db, month="Oct", year=2026)
    assert sorted(r.tenant.full_name for r in rows) == ["A", "B"]
    assert summary.total == 2
    assert summary.fully_paid == 1
    assert summary.not_paid == 1
    assert summary.total_outstanding == 1650.0


def _record_credit(db, tenant_id: int) -> float:
    db.expire_all()
    rows = db.scalars(select(MonthlyRecord).where(MonthlyRecord.tenant_id == tenant_id)).all()
    return sum(r.advance_balance for r in rows)


def test_credit_settled_elsewhere_cannot_cover_raised_water_bill(db):
    t = _tenant(db)
    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=1800), now=NOW)
    ensure_monthly_record(db, tenant=t, month="November", year=2026)
    db.commit()

    settled = settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)
    assert settled.settlement.total_settled == 150.0
    october = find_monthly_record(db, tenant_id=t.id, month="October", year=2026)
    assert settled.drawn_from == {october.id: 150.0}
    assert october.advance_balance == 0.0

    res = record_payment(
        db,
        tenant_id=t.id,
        month="October",
        year=2026,
        payment=ProposedPayment(update_water_bill=True, water_bill=600.0),
        now=NOW,
    )
    assert res.credit_used == {}
    assert res.record.balance_due == 100.0
    assert res.record.advance_balance == 0.0

    db.refresh(t)
    assert t.credit_balance == 0.0
    assert _record_credit(db, t.id) == 0.0


def test_unspent_record_credit_covers_raised_water_bill(db):
    t = _tenant(db)
    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=1800), now=NOW)

    res = record_payment(
        db,
        tenant_id=t.id,
        month="October",
        year=2026,
        payment=ProposedPayment(update_water_bill=True, water_bill=600.0),
        now=NOW,
    )
    assert res.credit_used == {"water": 100.0}
    assert res.record.balance_due == 0.0
    assert res.record.advance_balance == 50.0
    assert res.tenant_credit == 50.0


def test_two_settlements_against_one_month(db):
    t = _tenant(db)
    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=1800), now=NOW)
    ensure_monthly_record(db, tenant=t, month="November", year=2026)
    db.commit()

    first = settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)
    assert first.record.balance_due == 1500.0

    # December overpays by 350; that credit goes to November too
    dec = record_payment(db, tenant_id=t.id, month="December", year=2026, payment=_mpesa(rent=2000), now=NOW)
    assert dec.advance_generated == 350.0
    assert dec.tenant_credit == 350.0

    second = settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)
    assert second.settlement.settlements["water"] == 350.0
    assert second.settlement.remaining_advance == 0.0
    assert second.record.water_paid == 500.0
    assert second.record.balance_due == 1150.0

    db.refresh(t)
    assert t.credit_balance == 0.0
    assert _record_credit(db, t.id) == 0.0

    with pytest.raises(LedgerValidationError):
        settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)


def test_assessed_penalty_is_settled_first(db):
    t = _tenant(db)
    record_payment(db, tenant_id=t.id, month="October", year=2026, payment=_mpesa(rent=1800), now=NOW)
    ensure_monthly_record(db, tenant=t, month="November", year=2026)
    db.commit()

    res = assess_penalty(db, tenant_id=t.id, month="November", year=2026, penalties=100.0, now=NOW)
    assert res.transaction is None
    assert res.record.penalties == 100.0
    assert res.record.balance_due == 1750.0

    out = settle_credit(db, tenant_id=t.id, month="November", year=2026, now=NOW)
    assert out.settlement.settlements["penalty"] == 100.0
    assert out.settlement.settlements["water"] == 50.0
    assert out.record.penalties_paid == 100.0
    assert out.record.balance_due == 1600.0

    actions = [a.action for a in db.scalars(select(AuditEvent)).all()]
    assert "record.penalty_assessed" in actions
    assert "payment.settle" in actions


def test_penalty_assessment_is_validated(db):
    t = _tenant(db)
    with pytest.raises(LedgerValidationError):
        assess_penalty(db, tenant_id=t.id, month="October", year=2026, penalties=-1.0, now=NOW)
    assert find_monthly_record(db, tenant_id=t.id, month="October", year=2026) is None
