# backend/rentledger/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from rentledger.db import SessionLocal, init_db
from rentledger.domain.ledger import month_name
from rentledger.models import Tenant
from rentledger.services.payments import ensure_monthly_record


@dataclass(frozen=True)
class SeedResult:
    tenant_id: int
    full_name: str
    record_id: Optional[int]


def _get_or_create_tenant(
    db: Session,
    *,
    full_name: str,
    monthly_rent: float,
    garbage_bill: float,
    water_bill: float,
    entry_date: date,
) -> Tenant:
    row = db.query(Tenant).filter(Tenant.full_name == full_name).one_or_none()
    if row:
        return row
    row = Tenant(
        full_name=full_name,
        house_number="A1",
        building_name="Demo Court",
        monthly_rent=monthly_rent,
        garbage_bill=garbage_bill,
        default_water_bill=water_bill,
        entry_date=entry_date,
        status="active",
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    *,
    full_name: str = "Demo Tenant",
    monthly_rent: float = 12000.0,
    garbage_bill: float = 200.0,
    water_bill: float = 500.0,
    months_back: int = 2,
    create_current_record: bool = True,
    today: Optional[date] = None,
) -> SeedResult:
    today = today or date.today()
    y, m = today.year, today.month - int(months_back)
    while m < 1:
        y, m = y - 1, m + 12

    init_db()
    db = SessionLocal()
    try:
        t = _get_or_create_tenant(
            db,
            full_name=full_name,
            monthly_rent=monthly_rent,
            garbage_bill=garbage_bill,
            water_bill=water_bill,
            entry_date=date(y, m, 1),
        )

        record_id: Optional[int] = None
        if create_current_record:
            r = ensure_monthly_record(db, tenant=t, month=month_name(today.month), year=today.year)
            db.commit()
            record_id = int(r.id)

        return SeedResult(tenant_id=int(t.id), full_name=t.full_name, record_id=record_id)
    finally:
        db.close()
