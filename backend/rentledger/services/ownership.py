# backend/rentledger/services/ownership.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import LedgerNotFoundError
from ..domain.ledger import month_name, month_number
from ..models import MonthlyRecord, Tenant


def must_get_tenant(db: Session, *, tenant_id: int) -> Tenant:
    row = db.scalar(select(Tenant).where(Tenant.id == int(tenant_id)))
    if not row:
        raise LedgerNotFoundError("tenant not found")
    return row


def find_monthly_record(db: Session, *, tenant_id: int, month: str, year: int) -> MonthlyRecord | None:
    name = month_name(month_number(month))
    return db.scalar(
        select(MonthlyRecord).where(
            MonthlyRecord.tenant_id == int(tenant_id),
            MonthlyRecord.month == name,
            MonthlyRecord.year == int(year),
        )
    )


def must_get_monthly_record(db: Session, *, tenant_id: int, month: str, year: int) -> MonthlyRecord:
    row = find_monthly_record(db, tenant_id=tenant_id, month=month, year=year)
    if not row:
        raise LedgerNotFoundError(f"no monthly record for tenant {tenant_id} in {month} {year}")
    return row
