"""Initial cargo tables

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True) -> list:
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now())]
    if with_updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()))
    return columns


def upgrade() -> None:
    op.create_table(
        "sequence_counter",
        sa.Column("family", sa.String(), primary_key=True),
        sa.Column("key", sa.String(), primary_key=True),
        sa.Column("current_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("prefix", sa.String(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "shipment_transaction",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("shipment_date", sa.DateTime(), nullable=False, index=True),
        sa.Column("destination", sa.String(), nullable=False, server_default=""),
        sa.Column("stt_number", sa.String(), nullable=False, index=True),
        sa.Column("sender_id", sa.String(), nullable=False, index=True),
        sa.Column("sender_name", sa.String(), nullable=False),
        sa.Column("sender_phone", sa.String(), nullable=True),
        sa.Column("sender_address", sa.String(), nullable=True),
        sa.Column("sender_city", sa.String(), nullable=True),
        sa.Column("receiver_name", sa.String(), nullable=False),
        sa.Column("receiver_phone", sa.String(), nullable=True),
        sa.Column("receiver_address", sa.String(), nullable=True),
        sa.Column("receiver_city", sa.String(), nullable=True),
        sa.Column("collo", sa.Integer(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("weight_unit", sa.String(), nullable=False, server_default="KG"),
        sa.Column("pricing_mode", sa.String(), nullable=False, server_default="regular"),
        sa.Column("unit_price", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("amount", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("invoice_number", sa.String(), nullable=False, index=True),
        sa.Column("payment_method", sa.String(), nullable=False, server_default="Tunai"),
        sa.Column("settlement", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("is_taxable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ppn_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("ppn", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("contents", sa.String(), nullable=True),
        sa.Column("delivery_note", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("status_history", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "voyage",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("voyage_number", sa.String(), nullable=False, index=True),
        sa.Column("departure_date", sa.DateTime(), nullable=False, index=True),
        sa.Column("arrival_date", sa.DateTime(), nullable=True),
        sa.Column("route", sa.String(), nullable=False),
        sa.Column("ship_name", sa.String(), nullable=True),
        sa.Column("vehicle_numbers", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="planned"),
        sa.Column("transaction_ids", sa.JSON(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "expense",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("type", sa.String(), nullable=False, server_default="voyage"),
        sa.Column("voyage_id", sa.String(), nullable=True, index=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("date", sa.DateTime(), nullable=False, index=True),
        sa.Column("receipt_url", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "fleet",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("plate_number", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Available"),
        sa.Column("driver_name", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "maintenance_log",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("fleet_id", sa.String(), nullable=False, index=True),
        sa.Column("fleet_name", sa.String(), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False, server_default=""),
        sa.Column("cost", sa.BigInteger(), nullable=False),
        sa.Column("provider", sa.String(), nullable=False, server_default=""),
        sa.Column("expense_id", sa.String(), nullable=True),
        *_timestamps(with_updated=False),
    )

    op.create_table(
        "employee",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("employee_id", sa.String(), nullable=False, unique=True),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("join_date", sa.DateTime(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "billing_invoice",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("invoice_number", sa.String(), nullable=False, unique=True),
        sa.Column("client_id", sa.String(), nullable=True),
        sa.Column("client_name", sa.String(), nullable=False),
        sa.Column("client_address", sa.String(), nullable=True),
        sa.Column("transaction_ids", sa.JSON(), nullable=False),
        sa.Column("total_amount", sa.BigInteger(), nullable=False),
        sa.Column("issue_date", sa.DateTime(), nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Unpaid"),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("payment_method", sa.String(), nullable=True),
        sa.Column("payment_ref", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    for table in (
        "app_settings",
        "billing_invoice",
        "employee",
        "maintenance_log",
        "fleet",
        "expense",
        "voyage",
        "shipment_transaction",
        "sequence_counter",
    ):
        op.drop_table(table)
