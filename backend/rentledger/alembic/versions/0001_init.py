"""init ledger schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("house_number", sa.String(length=40), nullable=True),
        sa.Column("building_name", sa.String(length=120), nullable=True),
        sa.Column("monthly_rent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("garbage_bill", sa.Float(), nullable=False, server_default="0"),
        sa.Column("default_water_bill", sa.Float(), nullable=False, server_default="0"),
        sa.Column("deposit_required", sa.Float(), nullable=False, server_default="0"),
        sa.Column("expenses", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credit_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("leaving_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "monthly_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("month", sa.String(length=12), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("monthly_rent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("water_bill", sa.Float(), nullable=False, server_default="0"),
        sa.Column("garbage_bill", sa.Float(), nullable=False, server_default="0"),
        sa.Column("penalties", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rent_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("water_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("garbage_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("deposit_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("penalties_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("balance_due", sa.Float(), nullable=False, server_default="0"),
        sa.Column("advance_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_updated", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tenant_id", "month", "year", name="uq_monthly_records_tenant_month"),
    )
    op.create_index("ix_monthly_records_tenant_id", "monthly_records", ["tenant_id"])
    op.create_index("ix_monthly_records_year", "monthly_records", ["year"])

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("record_id", sa.Integer(), sa.ForeignKey("monthly_records.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("water", sa.Float(), nullable=False, server_default="0"),
        sa.Column("garbage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("penalty", sa.Float(), nullable=False, server_default="0"),
        sa.Column("deposit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("advance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("method", sa.String(length=40), nullable=False),
        sa.Column("reference", sa.String(length=120), nullable=False),
        sa.Column("month", sa.String(length=12), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("txn_date", sa.Date(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_payment_transactions_record_id", "payment_transactions", ["record_id"])
    op.create_index("ix_payment_transactions_tenant_id", "payment_transactions", ["tenant_id"])


def downgrade():
    op.drop_index("ix_payment_transactions_tenant_id", table_name="payment_transactions")
    op.drop_index("ix_payment_transactions_record_id", table_name="payment_transactions")
    op.drop_table("payment_transactions")
    op.drop_index("ix_monthly_records_year", table_name="monthly_records")
    op.drop_index("ix_monthly_records_tenant_id", table_name="monthly_records")
    op.drop_table("monthly_records")
    op.drop_table("tenants")
    op.drop_table("audit_events")
