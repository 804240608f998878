# backend/rentledger/routers/tenants.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from ..db import get_db
from ..domain.audit import audit_write
from ..models import Tenant
from ..schemas import (
    HistoryEntryOut,
    MonthlyRecordOut,
    TenantCreate,
    TenantOut,
    TenantTransactionsOut,
)
from ..services.ownership import must_get_tenant
from ..services.payments import list_monthly_records, tenant_history, tenant_transactions

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post("", response_model=TenantOut)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db)):
    row = Tenant(**payload.model_dump())
    db.add(row)
    db.flush()

    audit_write(
        db,
        action="tenant.create",
        entity_type="Tenant",
        entity_id=str(row.id),
        before=None,
        after=row.model_dump(),
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[TenantOut])
def list_tenants(
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    q = select(Tenant)
    if status:
        q = q.where(Tenant.status == status)
    q = q.order_by(desc(Tenant.id)).limit(limit)
    return list(db.scalars(q).all())


@router.get("/{tenant_id}", response_model=TenantOut)
def get_tenant(tenant_id: int, db: Session = Depends(get_db)):
    return must_get_tenant(db, tenant_id=tenant_id)


@router.patch("/{tenant_id}", response_model=TenantOut)
def update_tenant(
    tenant_id: int,
    payload: TenantCreate,  # full-update for simplicity
    db: Session = Depends(get_db),
):
    # existing monthly records keep their own due snapshot; only months
    # created from now on pick up new rent/garbage values
    row = must_get_tenant(db, tenant_id=tenant_id)
    before = row.model_dump()

    for k, v in payload.model_dump().items():
        setattr(row, k, v)

    audit_write(
        db,
        action="tenant.update",
        entity_type="Tenant",
        entity_id=str(row.id),
        before=before,
        after=row.model_dump(),
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("/{tenant_id}/monthly-records", response_model=list[MonthlyRecordOut])
def monthly_records(tenant_id: int, db: Session = Depends(get_db)):
    return list_monthly_records(db, tenant_id=tenant_id)


@router.get("/{tenant_id}/history", response_model=list[HistoryEntryOut])
def history(
    tenant_id: int,
    as_of: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    """Month-by-month status from entry date to today (or `as_of`), newest first."""
    entries = tenant_history(db, tenant_id=tenant_id, today=as_of)
    # plain dicts so the payment rows are read by attribute, not deep-copied
    return [dict(vars(h)) for h in entries]


@router.get("/{tenant_id}/transactions", response_model=TenantTransactionsOut)
def transactions(
    tenant_id: int,
    limit: int = Query(default=500, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    rows, total = tenant_transactions(db, tenant_id=tenant_id, limit=limit)
    tenant = must_get_tenant(db, tenant_id=tenant_id)
    return {
        "tenant_id": tenant.id,
        "total_paid": total,
        "count": len(rows),
        "credit_balance": float(tenant.credit_balance or 0.0),
        "transactions": rows,
    }
