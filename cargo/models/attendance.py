from enum import Enum

from sqlalchemy import JSON, Column, Date, DateTime, Float, Integer, String, UniqueConstraint, func

from cargo.models.base import Base


class ShiftType(str, Enum):
    REGULAR = "regular"
    OVERTIME_LOADING = "overtime_loading"
    OVERTIME_UNLOADING = "overtime_unloading"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEAVE = "leave"


OVERTIME_SHIFTS = frozenset({ShiftType.OVERTIME_LOADING, ShiftType.OVERTIME_UNLOADING})


class Attendance(Base):
    """One record per employee per calendar day, holding every shift worked that day."""

    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),)

    id = Column(String, primary_key=True)
    employee_id = Column(String, nullable=False, index=True)  # EMP-001
    date = Column(Date, nullable=False, index=True)

    # [{"type", "check_in", "check_out", "notes"}], local wall-clock ISO timestamps
    shifts = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default=AttendanceStatus.PRESENT.value)
    notes = Column(String, nullable=False, default="")
    total_hours = Column(Float, nullable=False, default=0)
    overtime_count = Column(Integer, nullable=False, default=0)  # loading/unloading events

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
