"""
Daily attendance.

Each employee has at most one record per local calendar day. A record holds
every shift worked that day: the regular shift and any loading/unloading
overtime shifts. Check-in appends a shift, check-out closes the open one.
Total hours, the overtime event count and the day's status are derived from
the shifts after every change; an arrival after 09:15 on the regular shift
marks the day late.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.config import Settings, get_settings
from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.attendance import OVERTIME_SHIFTS, Attendance, AttendanceStatus, ShiftType
from cargo.models.employee import Employee
from cargo.schemas.attendance import AttendanceSummary, Shift
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.utils.timeutil import local_now, utcnow

logger = logging.getLogger(__name__)

LATE_AFTER = time(9, 15)


def total_hours(shifts: Iterable[Shift]) -> float:
    """Hours across closed shifts. Open shifts count nothing."""
    seconds = sum((s.check_out - s.check_in).total_seconds() for s in shifts if s.check_out is not None)
    return seconds / 3600


def count_overtime_events(shifts: Iterable[Shift]) -> int:
    return sum(1 for s in shifts if s.type in OVERTIME_SHIFTS)


def is_late_check_in(at: datetime) -> bool:
    return (at.hour, at.minute) > (LATE_AFTER.hour, LATE_AFTER.minute)


def determine_status(shifts: Sequence[Shift]) -> AttendanceStatus:
    if not shifts:
        return AttendanceStatus.ABSENT
    regular = next((s for s in shifts if s.type == ShiftType.REGULAR), None)
    if regular is None:
        # Overtime only
        return AttendanceStatus.PRESENT
    return AttendanceStatus.LATE if is_late_check_in(regular.check_in) else AttendanceStatus.PRESENT


def summarize(employee_id: str, start: date, end: date, records: Iterable[Attendance]) -> AttendanceSummary:
    summary = AttendanceSummary(employee_id=employee_id, start=start, end=end)
    for record in records:
        summary.total_days += 1
        status = AttendanceStatus(record.status)
        setattr(summary, status.value, getattr(summary, status.value) + 1)
        summary.total_hours += record.total_hours or 0
        summary.overtime_count += record.overtime_count or 0
    summary.total_hours = round(summary.total_hours, 2)
    return summary


def shifts_of(record: Attendance) -> List[Shift]:
    return [Shift.model_validate(s) for s in record.shifts or []]


class AttendanceService:
    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    def now(self) -> datetime:
        return local_now(self.settings.utc_offset_hours)

    async def get_record(self, employee_id: str, day: date) -> Optional[Attendance]:
        result = await self.db.execute(
            select(Attendance).where(Attendance.employee_id == employee_id, Attendance.date == day)
        )
        return result.scalar_one_or_none()

    async def get_today(self, employee_id: str) -> Optional[Attendance]:
        return await self.get_record(employee_id, self.now().date())

    async def check_in(
        self,
        employee_id: str,
        shift_type: ShiftType = ShiftType.REGULAR,
        notes: str = "",
        at: Optional[datetime] = None,
    ) -> Attendance:
        """Start a shift. Refused while the employee's last shift of the day is still open."""
        await self._require_employee(employee_id)
        at = at or self.now()
        record = await self.get_record(employee_id, at.date())

        shifts = shifts_of(record) if record is not None else []
        if shifts and shifts[-1].check_out is None:
            raise ValidationFailure(f"{employee_id} already has an open shift", field="employee_id")
        shifts.append(Shift(type=shift_type, check_in=at, notes=notes))

        if record is None:
            record = Attendance(
                id=str(uuid.uuid4()), employee_id=employee_id, date=at.date(), notes="", created_at=utcnow()
            )
            self.db.add(record)
        self._apply(record, shifts)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info(f"{employee_id} checked in ({shift_type.value}) at {at:%Y-%m-%d %H:%M}")
        await emit_event(EventType.ATTENDANCE_UPDATED, {"id": record.id, "employee_id": employee_id})
        return record

    async def check_out(self, employee_id: str, at: Optional[datetime] = None) -> Attendance:
        """Close the open shift of the day and recompute the derived fields."""
        at = at or self.now()
        record = await self.get_record(employee_id, at.date())
        if record is None or not record.shifts:
            raise ValidationFailure("No check-in record found for today", field="employee_id")

        shifts = shifts_of(record)
        current = shifts[-1]
        if current.check_out is not None:
            raise ValidationFailure(f"{employee_id} has no open shift", field="employee_id")
        if at < current.check_in:
            raise ValidationFailure("Check-out cannot precede check-in", field="check_out")
        shifts[-1] = current.model_copy(update={"check_out": at})

        self._apply(record, shifts)
        await self.db.commit()
        await self.db.refresh(record)
        logger.info(f"{employee_id} checked out at {at:%Y-%m-%d %H:%M}; {record.total_hours}h that day")
        await emit_event(EventType.ATTENDANCE_UPDATED, {"id": record.id, "employee_id": employee_id})
        return record

    async def mark_absent(self, employee_id: str, day: date, notes: str = "") -> Attendance:
        """Overwrite the day with an absence, discarding any shifts recorded for it."""
        await self._require_employee(employee_id)
        record = await self.get_record(employee_id, day)
        if record is None:
            record = Attendance(id=str(uuid.uuid4()), employee_id=employee_id, date=day, created_at=utcnow())
            self.db.add(record)
        self._apply(record, [])
        record.notes = notes
        await self.db.commit()
        await self.db.refresh(record)
        await emit_event(EventType.ATTENDANCE_UPDATED, {"id": record.id, "employee_id": employee_id})
        return record

    async def update_status(
        self,
        employee_id: str,
        day: date,
        status: AttendanceStatus,
        notes: Optional[str] = None,
    ) -> Attendance:
        """Manual override, e.g. approved leave. The next check-in or check-out derives the status again."""
        record = await self.get_record(employee_id, day)
        if record is None:
            raise RecordNotFoundError("Attendance", f"{employee_id}/{day.isoformat()}")
        record.status = status.value
        if notes is not None:
            record.notes = notes
        record.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(record)
        await emit_event(EventType.ATTENDANCE_UPDATED, {"id": record.id, "employee_id": employee_id})
        return record

    async def list_for_employee(self, employee_id: str, start: date, end: date) -> List[Attendance]:
        result = await self.db.execute(
            select(Attendance)
            .where(Attendance.employee_id == employee_id, Attendance.date >= start, Attendance.date <= end)
            .order_by(Attendance.date.desc())
        )
        return list(result.scalars().all())

    async def list_for_date(self, day: date) -> List[Attendance]:
        result = await self.db.execute(
            select(Attendance).where(Attendance.date == day).order_by(Attendance.employee_id)
        )
        return list(result.scalars().all())

    async def summary(self, employee_id: str, start: date, end: date) -> AttendanceSummary:
        return summarize(employee_id, start, end, await self.list_for_employee(employee_id, start, end))

    async def _require_employee(self, employee_id: str) -> None:
        result = await self.db.execute(select(Employee.id).where(Employee.employee_id == employee_id))
        if result.scalar_one_or_none() is None:
            raise RecordNotFoundError("Employee", employee_id)

    @staticmethod
    def _apply(record: Attendance, shifts: List[Shift]) -> None:
        # Reassign so the JSON column is flagged dirty
        record.shifts = [s.model_dump(mode="json") for s in shifts]
        record.total_hours = round(total_hours(shifts), 2)
        record.overtime_count = count_overtime_events(shifts)
        record.status = determine_status(shifts).value
        record.updated_at = utcnow()
