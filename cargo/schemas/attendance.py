from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from cargo.models.attendance import AttendanceStatus, ShiftType


class Shift(BaseModel):
    type: ShiftType
    check_in: datetime
    check_out: Optional[datetime] = None
    notes: str = ""


class CheckInRequest(BaseModel):
    employee_id: str
    shift_type: ShiftType = ShiftType.REGULAR
    notes: str = ""


class CheckOutRequest(BaseModel):
    employee_id: str


class MarkAbsentRequest(BaseModel):
    employee_id: str
    date: date
    notes: str = ""


class AttendanceStatusUpdate(BaseModel):
    status: AttendanceStatus
    notes: Optional[str] = None


class AttendanceResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    employee_id: str
    date: date
    shifts: List[Shift]
    status: AttendanceStatus
    notes: str
    total_hours: float
    overtime_count: int
    created_at: datetime
    updated_at: datetime


class AttendanceSummary(BaseModel):
    employee_id: str
    start: date
    end: date
    total_days: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    leave: int = 0
    total_hours: float = 0
    overtime_count: int = 0

    @property
    def days_worked(self) -> int:
        """Present and late days; absence and leave are not worked."""
        return self.present + self.late
