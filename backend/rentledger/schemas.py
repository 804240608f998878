# backend/rentledger/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, model_validator

from .config import settings


# -------------------- Tenants --------------------

class TenantCreate(BaseModel):
    full_name: str
    phone: Optional[str] = None
    house_number: Optional[str] = None
    building_name: Optional[str] = None

    monthly_rent: float = Field(ge=0)
    garbage_bill: float = Field(default=0.0, ge=0)
    default_water_bill: float = Field(default=0.0, ge=0)
    deposit_required: float = Field(default=0.0, ge=0)
    expenses: float = Field(default=0.0, ge=0)

    entry_date: date
    leaving_date: Optional[date] = None
    status: str = "active"  # active|left

    @model_validator(mode="after")
    def _check_dates(self):
        if self.leaving_date is not None and self.leaving_date < self.entry_date:
            raise ValueError("leaving_date cannot be before entry_date")
        if self.status not in ("active", "left"):
            raise ValueError("status must be 'active' or 'left'")
        return self


class TenantOut(TenantCreate):
    id: int
    credit_balance: float = 0.0
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Monthly records / transactions --------------------

class TransactionOut(BaseModel):
    id: int
    record_id: int
    tenant_id: int
    rent: float
    water: float
    garbage: float
    penalty: float
    deposit: float
    advance: float
    total_amount: float
    method: str
    reference: str
    month: str
    year: int
    txn_date: date
    timestamp: datetime
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class MonthlyRecordOut(BaseModel):
    id: int
    tenant_id: int
    month: str
    year: int

    monthly_rent: float
    water_bill: float
    garbage_bill: float
    penalties: float

    rent_paid: float
    water_paid: float
    garbage_paid: float
    deposit_paid: float
    penalties_paid: float

    balance_due: float
    advance_balance: float

    version: int
    last_updated: Optional[datetime] = None
    transactions: List[TransactionOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class TenantTransactionsOut(BaseModel):
    tenant_id: int
    total_paid: float
    count: int
    credit_balance: float
    transactions: List[TransactionOut]


# -------------------- Payments --------------------

class PaymentIn(BaseModel):
    tenant_id: int
    month: str
    year: int = Field(ge=2000, le=2200)

    rent: float = 0.0
    water: float = 0.0
    garbage: float = 0.0
    penalty: float = 0.0
    deposit: float = 0.0

    method: str = Field(default_factory=lambda: settings.default_payment_method)
    reference: str = ""
    notes: str = ""

    update_water_bill: bool = False
    water_bill: Optional[float] = None

    update_penalties: bool = False
    penalties_due: Optional[float] = None

    # version of the record the client computed from (optimistic concurrency)
    expected_version: Optional[int] = None


class AllocationOut(BaseModel):
    effectives: dict[str, float]
    remaining: dict[str, float]
    excess: float
    new_balance_due: float
    advance_amount: float


class PaymentPreviewOut(BaseModel):
    tenant_id: int
    month: str
    year: int
    total_due: float
    total_already_paid: float
    new_total: float
    allocation: AllocationOut


class PaymentOut(BaseModel):
    record: MonthlyRecordOut
    transaction: Optional[TransactionOut] = None
    allocation: AllocationOut
    credit_added: float
    credit_used: dict[str, float]
    tenant_credit: float


class PenaltyIn(BaseModel):
    tenant_id: int
    month: str
    year: int = Field(ge=2000, le=2200)
    penalties: float = Field(ge=0)
    expected_version: Optional[int] = None


class SettleIn(BaseModel):
    tenant_id: int
    month: str
    year: int = Field(ge=2000, le=2200)
    expected_version: Optional[int] = None


class SettleOut(BaseModel):
    success: bool = True
    settlements: dict[str, float]
    total_settled: float
    remaining_tenant_credit: float
    record: MonthlyRecordOut


# -------------------- History / overview --------------------

class HistoryEntryOut(BaseModel):
    month: str
    month_key: str
    year: int
    expected_rent: float
    rent_paid: float
    water_paid: float
    garbage_paid: float
    deposit_paid: float
    penalty_paid: float
    total_paid: float
    status: str  # paid|partial|unpaid|deposit
    has_record: bool
    payments: List[TransactionOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class PaymentStatusOut(BaseModel):
    is_paid_full: bool
    is_partial_paid: bool
    is_not_paid: bool
    total_due: float
    total_applied: float
    advance_this_month: float
    balance_due: float
    model_config = ConfigDict(from_attributes=True)


class MonthOverviewRowOut(BaseModel):
    tenant_id: int
    full_name: str
    house_number: Optional[str] = None
    building_name: Optional[str] = None
    record: MonthlyRecordOut
    status: PaymentStatusOut


class StatusSummaryOut(BaseModel):
    total: int
    fully_paid: int
    partial_paid: int
    not_paid: int
    total_due: float
    total_collected: float
    total_outstanding: float
    model_config = ConfigDict(from_attributes=True)


class MonthOverviewOut(BaseModel):
    month: str
    year: int
    summary: StatusSummaryOut
    records: List[MonthOverviewRowOut]
