from enum import Enum

from sqlalchemy import BigInteger, Column, DateTime, String, func

from cargo.models.base import Base


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Employee(Base):
    __tablename__ = "employee"

    id = Column(String, primary_key=True)
    employee_id = Column(String, nullable=False, unique=True)  # EMP-001
    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False)
    status = Column(String, nullable=False, default=EmployeeStatus.ACTIVE.value)
    join_date = Column(DateTime, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    notes = Column(String, nullable=True)

    # Salary configuration, whole rupiah
    base_salary = Column(BigInteger, nullable=False, default=0)  # monthly
    daily_allowance = Column(BigInteger, nullable=False, default=0)  # per day worked
    trip_commission = Column(BigInteger, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
