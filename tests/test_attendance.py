"""Daily attendance: shifts, derived status and monthly summaries."""
from datetime import date, datetime

import pytest
import pytest_asyncio

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.attendance import AttendanceStatus, ShiftType
from cargo.schemas.attendance import Shift
from cargo.schemas.employee import EmployeeCreate
from cargo.services.attendance import (
    AttendanceService,
    count_overtime_events,
    determine_status,
    is_late_check_in,
    shifts_of,
    total_hours,
)
from cargo.services.employee import EmployeeService


@pytest.fixture
def attendance(db, settings) -> AttendanceService:
    return AttendanceService(db, settings)


@pytest_asyncio.fixture
async def employee(db, counters):
    return await EmployeeService(db, counters).create_employee(
        EmployeeCreate(full_name="Budi Santoso", role="Loader", join_date=datetime(2026, 1, 5))
    )


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 10, day, hour, minute)


class TestShiftArithmetic:
    def test_late_after_quarter_past_nine(self) -> None:
        assert not is_late_check_in(at(6, 9, 15))
        assert is_late_check_in(at(6, 9, 16))
        assert not is_late_check_in(at(6, 7, 50))

    def test_hours_count_closed_shifts_only(self) -> None:
        shifts = [
            Shift(type=ShiftType.REGULAR, check_in=at(6, 8), check_out=at(6, 16, 30)),
            Shift(type=ShiftType.OVERTIME_LOADING, check_in=at(6, 19)),
        ]
        assert total_hours(shifts) == 8.5

    def test_overtime_events(self) -> None:
        shifts = [
            Shift(type=ShiftType.REGULAR, check_in=at(6, 8)),
            Shift(type=ShiftType.OVERTIME_LOADING, check_in=at(6, 19)),
            Shift(type=ShiftType.OVERTIME_UNLOADING, check_in=at(6, 22)),
        ]
        assert count_overtime_events(shifts) == 2

    def test_status_from_shifts(self) -> None:
        assert determine_status([]) == AttendanceStatus.ABSENT
        assert determine_status([Shift(type=ShiftType.REGULAR, check_in=at(6, 10))]) == AttendanceStatus.LATE
        assert determine_status([Shift(type=ShiftType.REGULAR, check_in=at(6, 8))]) == AttendanceStatus.PRESENT
        # Overtime-only days are never late
        overtime = [Shift(type=ShiftType.OVERTIME_UNLOADING, check_in=at(6, 21))]
        assert determine_status(overtime) == AttendanceStatus.PRESENT


class TestCheckInOut:
    @pytest.mark.asyncio
    async def test_regular_day(self, attendance, employee) -> None:
        record = await attendance.check_in("EMP-001", at=at(6, 8))
        assert record.status == "present"
        assert record.total_hours == 0

        record = await attendance.check_out("EMP-001", at=at(6, 17))
        assert record.date == date(2026, 10, 6)
        assert record.total_hours == 9
        assert shifts_of(record)[0].check_out == at(6, 17)

    @pytest.mark.asyncio
    async def test_late_arrival(self, attendance, employee) -> None:
        record = await attendance.check_in("EMP-001", at=at(6, 9, 40))
        assert record.status == "late"

    @pytest.mark.asyncio
    async def test_overtime_shift_after_regular(self, attendance, employee) -> None:
        await attendance.check_in("EMP-001", at=at(6, 8))
        await attendance.check_out("EMP-001", at=at(6, 16))
        await attendance.check_in("EMP-001", ShiftType.OVERTIME_UNLOADING, notes="KM Sinar", at=at(6, 20))
        record = await attendance.check_out("EMP-001", at=at(6, 23))

        assert [s.type for s in shifts_of(record)] == [ShiftType.REGULAR, ShiftType.OVERTIME_UNLOADING]
        assert record.overtime_count == 1
        assert record.total_hours == 11
        assert record.status == "present"

    @pytest.mark.asyncio
    async def test_second_check_in_while_open(self, attendance, employee) -> None:
        await attendance.check_in("EMP-001", at=at(6, 8))
        with pytest.raises(ValidationFailure):
            await attendance.check_in("EMP-001", ShiftType.OVERTIME_LOADING, at=at(6, 12))

    @pytest.mark.asyncio
    async def test_check_out_without_check_in(self, attendance, employee) -> None:
        with pytest.raises(ValidationFailure) as exc:
            await attendance.check_out("EMP-001", at=at(6, 17))
        assert "No check-in record" in str(exc.value)

    @pytest.mark.asyncio
    async def test_check_out_twice(self, attendance, employee) -> None:
        await attendance.check_in("EMP-001", at=at(6, 8))
        await attendance.check_out("EMP-001", at=at(6, 17))
        with pytest.raises(ValidationFailure):
            await attendance.check_out("EMP-001", at=at(6, 18))

    @pytest.mark.asyncio
    async def test_check_out_before_check_in(self, attendance, employee) -> None:
        await attendance.check_in("EMP-001", at=at(6, 8))
        with pytest.raises(ValidationFailure) as exc:
            await attendance.check_out("EMP-001", at=at(6, 7))
        assert exc.value.field == "check_out"

    @pytest.mark.asyncio
    async def test_unknown_employee(self, attendance) -> None:
        with pytest.raises(RecordNotFoundError):
            await attendance.check_in("EMP-404", at=at(6, 8))


class TestAbsenceAndOverrides:
    @pytest.mark.asyncio
    async def test_mark_absent_overwrites_day(self, attendance, employee) -> None:
        await attendance.check_in("EMP-001", at=at(6, 8))
        record = await attendance.mark_absent("EMP-001", date(2026, 10, 6), notes="Sick")

        assert record.status == "absent"
        assert record.shifts == []
        assert record.total_hours == 0
        assert record.notes == "Sick"
        assert len(await attendance.list_for_date(date(2026, 10, 6))) == 1

    @pytest.mark.asyncio
    async def test_update_status(self, attendance, employee) -> None:
        await attendance.mark_absent("EMP-001", date(2026, 10, 7))
        record = await attendance.update_status("EMP-001", date(2026, 10, 7), AttendanceStatus.LEAVE, "Approved")
        assert record.status == "leave"
        assert record.notes == "Approved"

    @pytest.mark.asyncio
    async def test_update_status_missing_day(self, attendance, employee) -> None:
        with pytest.raises(RecordNotFoundError):
            await attendance.update_status("EMP-001", date(2026, 10, 7), AttendanceStatus.LEAVE)


class TestSummary:
    @pytest.mark.asyncio
    async def test_month_summary(self, attendance, employee) -> None:
        await attendance.check_in("EMP-001", at=at(6, 8))
        await attendance.check_out("EMP-001", at=at(6, 16))
        await attendance.check_in("EMP-001", ShiftType.OVERTIME_LOADING, at=at(6, 19))
        await attendance.check_out("EMP-001", at=at(6, 21))
        await attendance.check_in("EMP-001", at=at(7, 9, 30))
        await attendance.check_out("EMP-001", at=at(7, 17))
        await attendance.mark_absent("EMP-001", date(2026, 10, 8))
        # Outside the range
        await attendance.check_in("EMP-001", at=datetime(2026, 11, 2, 8))

        summary = await attendance.summary("EMP-001", date(2026, 10, 1), date(2026, 10, 31))

        assert summary.total_days == 3
        assert (summary.present, summary.late, summary.absent, summary.leave) == (1, 1, 1, 0)
        assert summary.days_worked == 2
        assert summary.overtime_count == 1
        assert summary.total_hours == 17.5

    @pytest.mark.asyncio
    async def test_history_newest_first(self, attendance, employee) -> None:
        for day in (6, 8, 7):
            await attendance.check_in("EMP-001", at=at(day, 8))
        records = await attendance.list_for_employee("EMP-001", date(2026, 10, 1), date(2026, 10, 31))
        assert [r.date.day for r in records] == [8, 7, 6]


class TestAttendanceApi:
    @pytest.mark.asyncio
    async def test_absent_then_leave(self, client, employee) -> None:
        response = await client.post(
            "/api/attendance/absent", json={"employee_id": "EMP-001", "date": "2026-10-06", "notes": "Sick"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "absent"

        response = await client.put("/api/attendance/EMP-001/2026-10-06", json={"status": "leave"})
        assert response.json()["status"] == "leave"

        summary = (
            await client.get("/api/attendance/EMP-001/summary", params={"start": "2026-10-01", "end": "2026-10-31"})
        ).json()
        assert summary["leave"] == 1

    @pytest.mark.asyncio
    async def test_check_out_without_check_in_is_422(self, client, employee) -> None:
        response = await client.post("/api/attendance/check-out", json={"employee_id": "EMP-001"})
        assert response.status_code == 422
