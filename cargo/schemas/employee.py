from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from cargo.models.employee import EmployeeStatus


class EmployeeCreate(BaseModel):
    full_name: str
    role: str
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    join_date: datetime
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    base_salary: int = 0
    daily_allowance: int = 0
    trip_commission: int = 0


class EmployeeUpdate(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    status: Optional[EmployeeStatus] = None
    join_date: Optional[datetime] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    base_salary: Optional[int] = None
    daily_allowance: Optional[int] = None
    trip_commission: Optional[int] = None


class EmployeeResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    employee_id: str
    full_name: str
    role: str
    status: EmployeeStatus
    join_date: datetime
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    base_salary: int = 0
    daily_allowance: int = 0
    trip_commission: int = 0
    created_at: datetime
    updated_at: datetime


class NextEmployeeId(BaseModel):
    employee_id: str
