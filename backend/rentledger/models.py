# backend/rentledger/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    house_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    building_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    garbage_bill: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    default_water_bill: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deposit_required: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # lifetime outstanding expenses
    expenses: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # standing advance carried between months
    credit_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    leaving_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|left

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    monthly_records: Mapped[List["MonthlyRecord"]] = relationship(
        back_populates="tenant", cascade="all, delete-orphan"
    )

    def model_dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "monthly_rent": self.monthly_rent,
            "garbage_bill": self.garbage_bill,
            "default_water_bill": self.default_water_bill,
            "expenses": self.expenses,
            "credit_balance": self.credit_balance,
            "entry_date": self.entry_date,
            "leaving_date": self.leaving_date,
            "status": self.status,
        }


class MonthlyRecord(Base):
    __tablename__ = "monthly_records"
    __table_args__ = (UniqueConstraint("tenant_id", "month", "year", name="uq_monthly_records_tenant_month"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )

    month: Mapped[str] = mapped_column(String(12), nullable=False)  # "January".."December"
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # due this month (snapshot; authoritative over the tenant's current fees)
    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    water_bill: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    garbage_bill: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    penalties: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # paid this month (only ever increases)
    rent_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    water_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    garbage_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deposit_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    penalties_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    balance_due: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    advance_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    tenant: Mapped["Tenant"] = relationship(back_populates="monthly_records")
    transactions: Mapped[List["PaymentTransaction"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="PaymentTransaction.id",
    )

    # optimistic concurrency: UPDATE ... WHERE version = <read version>
    __mapper_args__ = {"version_id_col": version}

    def model_dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "month": self.month,
            "year": self.year,
            "monthly_rent": self.monthly_rent,
            "water_bill": self.water_bill,
            "garbage_bill": self.garbage_bill,
            "penalties": self.penalties,
            "rent_paid": self.rent_paid,
            "water_paid": self.water_paid,
            "garbage_paid": self.garbage_paid,
            "deposit_paid": self.deposit_paid,
            "penalties_paid": self.penalties_paid,
            "balance_due": self.balance_due,
            "advance_balance": self.advance_balance,
            "version": self.version,
        }


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    record_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("monthly_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # amounts applied per category
    rent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    water: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    garbage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    penalty: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deposit: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # portion that had nowhere to go and became tenant credit
    advance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)

    method: Mapped[str] = mapped_column(String(40), nullable=False)  # cash|mpesa|equity|kcb|cooperative|family_bank|bank
    reference: Mapped[str] = mapped_column(String(120), nullable=False)

    month: Mapped[str] = mapped_column(String(12), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    txn_date: Mapped[date] = mapped_column(Date, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    record: Mapped["MonthlyRecord"] = relationship(back_populates="transactions")

    def model_dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "record_id": self.record_id,
            "tenant_id": self.tenant_id,
            "rent": self.rent,
            "water": self.water,
            "garbage": self.garbage,
            "penalty": self.penalty,
            "deposit": self.deposit,
            "advance": self.advance,
            "total_amount": self.total_amount,
            "method": self.method,
            "reference": self.reference,
            "month": self.month,
            "year": self.year,
        }
