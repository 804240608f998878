# backend/rentledger/routers/payments.py
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..domain.allocation import Allocation, ProposedPayment, due_after_updates
from ..domain.ledger import month_name, month_number, total_paid
from ..schemas import (
    MonthOverviewOut,
    PaymentIn,
    PaymentOut,
    PaymentPreviewOut,
    PenaltyIn,
    SettleIn,
    SettleOut,
)
from ..services.payments import PaymentResult, assess_penalty, month_overview, preview, record_payment, settle_credit

router = APIRouter(prefix="/payments", tags=["payments"])


def _proposed(payload: PaymentIn) -> ProposedPayment:
    return ProposedPayment(
        rent=payload.rent,
        water=payload.water,
        garbage=payload.garbage,
        penalty=payload.penalty,
        deposit=payload.deposit,
        method=payload.method,
        reference=payload.reference,
        notes=payload.notes,
        update_water_bill=payload.update_water_bill,
        water_bill=payload.water_bill,
        update_penalties=payload.update_penalties,
        penalties_due=payload.penalties_due,
    )


def _allocation_out(a: Allocation) -> dict:
    return {
        "effectives": {k: round(v, 2) for k, v in a.effectives.items()},
        "remaining": {k: round(v, 2) for k, v in a.remaining.items()},
        "excess": round(a.excess, 2),
        "new_balance_due": round(a.new_balance_due, 2),
        "advance_amount": round(a.advance_amount, 2),
    }


def _payment_out(res: PaymentResult) -> dict:
    return {
        "record": res.record,
        "transaction": res.transaction,
        "allocation": _allocation_out(res.allocation),
        "credit_added": res.advance_generated,
        "credit_used": res.credit_used,
        "tenant_credit": res.tenant_credit,
    }


@router.post("/preview", response_model=PaymentPreviewOut)
def preview_payment(payload: PaymentIn, db: Session = Depends(get_db)):
    """What the payment would do to the month, without saving anything."""
    payment = _proposed(payload)
    snap, alloc = preview(
        db, tenant_id=payload.tenant_id, month=payload.month, year=payload.year, payment=payment
    )
    due = sum(due_after_updates(snap, payment).values())
    return {
        "tenant_id": snap.tenant_id,
        "month": snap.month,
        "year": snap.year,
        "total_due": round(due, 2),
        "total_already_paid": round(total_paid(snap), 2),
        "new_total": round(payment.category_total, 2),
        "allocation": _allocation_out(alloc),
    }


@router.post("", response_model=PaymentOut)
def create_payment(payload: PaymentIn, db: Session = Depends(get_db)):
    res = record_payment(
        db,
        tenant_id=payload.tenant_id,
        month=payload.month,
        year=payload.year,
        payment=_proposed(payload),
        expected_version=payload.expected_version,
    )
    return _payment_out(res)


@router.post("/penalty", response_model=PaymentOut)
def penalty(payload: PenaltyIn, db: Session = Depends(get_db)):
    """Assess (or correct) the penalty due for one tenant-month."""
    res = assess_penalty(
        db,
        tenant_id=payload.tenant_id,
        month=payload.month,
        year=payload.year,
        penalties=payload.penalties,
        expected_version=payload.expected_version,
    )
    return _payment_out(res)


@router.post("/settle", response_model=SettleOut)
def settle(payload: SettleIn, db: Session = Depends(get_db)):
    res = settle_credit(
        db,
        tenant_id=payload.tenant_id,
        month=payload.month,
        year=payload.year,
        expected_version=payload.expected_version,
    )
    st = res.settlement
    return {
        "success": True,
        "settlements": st.settlements,
        "total_settled": st.total_settled,
        "remaining_tenant_credit": st.remaining_advance,
        "record": res.record,
    }


@router.get("/monthly", response_model=MonthOverviewOut)
def monthly(
    month: str = Query(...),
    year: int = Query(..., ge=2000, le=2200),
    db: Session = Depends(get_db),
):
    """
    Month overview: every active tenant's record for the month with
    fully/partially/not paid counts.
    """
    rows, summary = month_overview(db, month=month, year=year)
    return {
        "month": month_name(month_number(month)),
        "year": year,
        "summary": asdict(summary),
        "records": [
            {
                "tenant_id": r.tenant.id,
                "full_name": r.tenant.full_name,
                "house_number": r.tenant.house_number,
                "building_name": r.tenant.building_name,
                "record": r.record,
                "status": asdict(r.status),
            }
            for r in rows
        ],
    }
