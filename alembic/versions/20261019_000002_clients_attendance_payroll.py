"""Clients, attendance, payroll and employee salary configuration

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19 15:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "client",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=True, index=True),
        sa.Column("name", sa.String(), nullable=False, index=True),
        sa.Column("phone", sa.String(), nullable=False, server_default=""),
        sa.Column("address", sa.String(), nullable=False, server_default=""),
        sa.Column("city", sa.String(), nullable=False, server_default=""),
        sa.Column("notes", sa.String(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "attendance",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("employee_id", sa.String(), nullable=False, index=True),
        sa.Column("date", sa.Date(), nullable=False, index=True),
        sa.Column("shifts", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="present"),
        sa.Column("notes", sa.String(), nullable=False, server_default=""),
        sa.Column("total_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("overtime_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )

    op.create_table(
        "monthly_payroll",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("period", sa.String(), nullable=False, unique=True),
        sa.Column("calculations", sa.JSON(), nullable=False),
        sa.Column("total_gross_pay", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_net_pay", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_employees", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
    )

    with op.batch_alter_table("employee") as batch_op:
        batch_op.add_column(sa.Column("base_salary", sa.BigInteger(), nullable=False, server_default="0"))
        batch_op.add_column(sa.Column("daily_allowance", sa.BigInteger(), nullable=False, server_default="0"))
        batch_op.add_column(sa.Column("trip_commission", sa.BigInteger(), nullable=False, server_default="0"))


def downgrade() -> None:
    with op.batch_alter_table("employee") as batch_op:
        batch_op.drop_column("trip_commission")
        batch_op.drop_column("daily_allowance")
        batch_op.drop_column("base_salary")

    op.drop_table("monthly_payroll")
    op.drop_table("attendance")
    op.drop_table("client")
