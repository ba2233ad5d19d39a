from enum import Enum

from sqlalchemy import JSON, BigInteger, Column, DateTime, Integer, String, func

from cargo.models.base import Base


class PayrollStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"


class DeductionType(str, Enum):
    TAX = "tax"
    INSURANCE = "insurance"
    ADVANCE = "advance"  # kasbon
    OTHER = "other"


class MonthlyPayroll(Base):
    __tablename__ = "monthly_payroll"

    id = Column(String, primary_key=True)
    period = Column(String, nullable=False, unique=True)  # "2026-10"

    # One PayrollCalculation dict per employee
    calculations = Column(JSON, nullable=False, default=list)
    total_gross_pay = Column(BigInteger, nullable=False, default=0)
    total_net_pay = Column(BigInteger, nullable=False, default=0)
    total_employees = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default=PayrollStatus.DRAFT.value)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
    finalized_at = Column(DateTime, nullable=True)
