# backend/tests/test_allocation_engine.py
from __future__ import annotations

from datetime import datetime

import pytest

from rentledger.domain.allocation import ProposedPayment, allocate, apply_payment
from rentledger.domain.errors import LedgerValidationError
from rentledger.domain.ledger import MonthSnapshot

DUE = {"rent": 1000.0, "water": 500.0, "garbage": 150.0, "penalty": 200.0}
NOTHING_PAID = {"rent": 0.0, "water": 0.0, "garbage": 0.0, "penalty": 0.0}
NOW = datetime(2026, 10, 18, 9, 30, 0)


def _record(**kw) -> MonthSnapshot:
    base = dict(
        tenant_id=1,
        month="October",
        year=2026,
        monthly_rent=1000.0,
        water_bill=500.0,
        garbage_bill=150.0,
        penalties=200.0,
        balance_due=1850.0,
    )
    base.update(kw)
    return MonthSnapshot(**base)


def test_penalty_overpayment_is_spread_in_priority_order():
    a = allocate(DUE, NOTHING_PAID, {"rent": 0, "water": 0, "garbage": 0, "penalty": 2000})
    assert a.effectives == {"penalty": 200.0, "water": 500.0, "garbage": 150.0, "rent": 1000.0}
    assert a.excess == 1800.0
    assert a.advance_amount == 150.0
    assert a.new_balance_due == 0.0


def test_partial_rent_payment_leaves_balance():
    a = allocate(DUE, NOTHING_PAID, {"rent": 400})
    assert a.effectives["rent"] == 400.0
    assert a.advance_amount == 0.0
    assert a.new_balance_due == 1450.0


def test_excess_on_one_category_goes_to_penalty_before_rent():
    a = allocate(DUE, NOTHING_PAID, {"water": 700})
    assert a.effectives["water"] == 500.0
    assert a.effectives["penalty"] == 200.0
    assert a.effectives["rent"] == 0.0
    assert a.new_balance_due == 1150.0
    assert a.advance_amount == 0.0


def test_overpaid_category_absorbs_nothing_and_offsets_balance():
    paid = {"rent": 1100.0, "water": 0.0, "garbage": 0.0, "penalty": 0.0}
    a = allocate(DUE, paid, {"rent": 50})
    assert a.effectives["rent"] == 0.0
    assert a.effectives["penalty"] == 50.0
    # rent is 100 over; the final balance nets it against what is still owed
    assert a.remaining["rent"] == -100.0
    assert a.new_balance_due == 700.0


@pytest.mark.parametrize(
    "paid,proposed",
    [
        (NOTHING_PAID, {"rent": 3000, "water": 10, "garbage": 0, "penalty": 5}),
        (NOTHING_PAID, {"rent": 250, "water": 250, "garbage": 250, "penalty": 250}),
        ({"rent": 1000.0, "water": 500.0, "garbage": 150.0, "penalty": 200.0}, {"rent": 75, "water": 25}),
        ({"rent": 1200.0, "water": 100.0, "garbage": 0.0, "penalty": 0.0}, {"garbage": 400, "rent": 20}),
    ],
)
def test_allocation_conserves_money(paid, proposed):
    a = allocate(DUE, paid, proposed)
    assert sum(a.effectives.values()) + a.advance_amount == pytest.approx(sum(proposed.values()))
    assert a.new_balance_due >= 0
    assert a.advance_amount >= 0
    assert all(v >= 0 for v in a.effectives.values())


def test_all_zero_payment_is_rejected():
    with pytest.raises(LedgerValidationError):
        apply_payment(_record(), ProposedPayment(method="cash"), now=NOW)


def test_water_bill_update_without_payment_is_accepted():
    out = apply_payment(
        _record(),
        ProposedPayment(method="mpesa", update_water_bill=True, water_bill=800.0),
        now=NOW,
    )
    assert out.transaction is None
    assert out.record.water_bill == 800.0
    assert out.record.balance_due == 2150.0


def test_non_cash_payment_requires_reference():
    with pytest.raises(LedgerValidationError):
        apply_payment(_record(), ProposedPayment(rent=500, method="mpesa", reference="  "), now=NOW)


def test_cash_payment_generates_reference():
    out = apply_payment(_record(), ProposedPayment(rent=500, method="cash"), now=NOW)
    ref = out.transaction.reference
    assert ref.startswith("CASH-")
    assert len(ref.split("-", 1)[1]) == 8


def test_negative_amount_and_unknown_method_rejected():
    with pytest.raises(LedgerValidationError):
        apply_payment(_record(), ProposedPayment(rent=-1, method="cash"), now=NOW)
    with pytest.raises(LedgerValidationError):
        apply_payment(_record(), ProposedPayment(rent=10, method="cheque", reference="X"), now=NOW)


def test_deposit_is_kept_out_of_balance_arithmetic():
    out = apply_payment(
        _record(),
        ProposedPayment(rent=1000, deposit=5000, method="kcb", reference="KCB123"),
        now=NOW,
    )
    assert out.record.deposit_paid == 5000.0
    assert out.record.rent_paid == 1000.0
    assert out.record.balance_due == 850.0
    assert out.transaction.total_amount == 6000.0
    assert out.transaction.deposit == 5000.0
    assert out.advance_generated == 0.0


def test_overpayment_becomes_record_advance():
    rec = _record()
    out = apply_payment(rec, ProposedPayment(penalty=2000, method="mpesa", reference="QK12"), now=NOW)
    assert out.record.balance_due == 0.0
    assert out.record.advance_balance == 150.0
    assert out.advance_generated == 150.0
    assert out.transaction.advance == 150.0
    # input snapshot untouched
    assert rec.penalties_paid == 0.0


def test_raised_water_bill_is_covered_by_credit_held_on_record():
    rec = _record(
        penalties=0.0,
        rent_paid=1000.0,
        water_paid=500.0,
        garbage_paid=150.0,
        balance_due=0.0,
        advance_balance=150.0,
    )
    out = apply_payment(rec, ProposedPayment(update_water_bill=True, water_bill=600.0), now=NOW)
    assert out.credit_used == {"water": 100.0}
    assert out.record.water_paid == 600.0
    assert out.record.balance_due == 0.0
    assert out.record.advance_balance == 50.0


def test_record_credit_already_spent_elsewhere_is_not_reused():
    rec = _record(
        penalties=0.0,
        rent_paid=1000.0,
        water_paid=500.0,
        garbage_paid=150.0,
        balance_due=0.0,
        advance_balance=150.0,
    )
    out = apply_payment(
        rec,
        ProposedPayment(update_water_bill=True, water_bill=600.0),
        now=NOW,
        credit_available=0.0,
    )
    assert out.credit_used == {}
    assert out.record.balance_due == 100.0
    assert out.record.advance_balance == 0.0


def test_record_credit_is_capped_by_tenant_credit():
    rec = _record(
        penalties=0.0,
        rent_paid=1000.0,
        water_paid=500.0,
        garbage_paid=150.0,
        balance_due=0.0,
        advance_balance=150.0,
    )
    out = apply_payment(
        rec,
        ProposedPayment(update_water_bill=True, water_bill=700.0),
        now=NOW,
        credit_available=60.0,
    )
    assert out.credit_used == {"water": 60.0}
    assert out.record.balance_due == 140.0
    assert out.record.advance_balance == 0.0


def test_penalty_assessment_reopens_balance():
    rec = _record(penalties=0.0, rent_paid=1000.0, water_paid=500.0, garbage_paid=150.0, balance_due=0.0)
    out = apply_payment(rec, ProposedPayment(update_penalties=True, penalties_due=250.0), now=NOW)
    assert out.transaction is None
    assert out.record.penalties == 250.0
    assert out.record.balance_due == 250.0

    with pytest.raises(LedgerValidationError):
        apply_payment(rec, ProposedPayment(update_penalties=True, penalties_due=-5.0), now=NOW)
    with pytest.raises(LedgerValidationError):
        apply_payment(rec, ProposedPayment(update_penalties=True), now=NOW)


def test_default_method_comes_from_settings():
    from rentledger.config import settings

    assert ProposedPayment().method == settings.default_payment_method
