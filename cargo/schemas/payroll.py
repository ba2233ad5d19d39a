from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from cargo.models.payroll import DeductionType, PayrollStatus

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class PayrollDeduction(BaseModel):
    type: DeductionType
    description: str = ""
    amount: int


class PayrollCalculation(BaseModel):
    employee_id: str
    employee_name: str
    employee_role: str
    period: str

    base_salary: int
    daily_allowance: int
    days_worked: int
    total_allowance: int

    trips_completed: int = 0
    commission_per_trip: int = 0
    total_commission: int = 0

    overtime_events: int
    overtime_rate: int
    total_overtime: int

    deductions: List[PayrollDeduction] = Field(default_factory=list)
    total_deductions: int = 0

    gross_pay: int
    net_pay: int

    status: PayrollStatus = PayrollStatus.DRAFT
    generated_at: datetime
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class PayrollGenerateRequest(BaseModel):
    period: str = Field(..., pattern=PERIOD_PATTERN)
    notes: Optional[str] = None
    # Defaults to every active employee
    employee_ids: Optional[List[str]] = None


class PayrollStatusUpdate(BaseModel):
    status: PayrollStatus


class PayrollResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    period: str
    calculations: List[PayrollCalculation]
    total_gross_pay: int
    total_net_pay: int
    total_employees: int
    status: PayrollStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    finalized_at: Optional[datetime] = None


class PayrollSummary(BaseModel):
    period: str
    total_gross_pay: int
    total_net_pay: int
    total_employees: int
    average_per_employee: float
    status: PayrollStatus
