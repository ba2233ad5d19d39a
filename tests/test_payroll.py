"""Monthly payroll: the pay formula, deductions and the payroll lifecycle."""
from datetime import date, datetime

import pytest

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.attendance import ShiftType
from cargo.models.employee import Employee, EmployeeStatus
from cargo.models.payroll import DeductionType, PayrollStatus
from cargo.schemas.attendance import AttendanceSummary
from cargo.schemas.employee import EmployeeCreate
from cargo.schemas.payroll import PayrollDeduction
from cargo.services.attendance import AttendanceService
from cargo.services.employee import EmployeeService
from cargo.services.payroll import (
    PayrollService,
    add_deduction,
    calculate_payroll,
    calculations_of,
    parse_period,
    period_range,
    previous_period,
    remove_deduction,
    validate_calculation,
)

GENERATED_AT = datetime(2026, 11, 1, 8)


@pytest.fixture
def employees(db, counters) -> EmployeeService:
    return EmployeeService(db, counters)


@pytest.fixture
def payrolls(db, settings) -> PayrollService:
    return PayrollService(db, settings)


@pytest.fixture
def attendance(db, settings) -> AttendanceService:
    return AttendanceService(db, settings)


def employee_form(**overrides) -> EmployeeCreate:
    data = {
        "full_name": "Budi Santoso",
        "role": "Loader",
        "join_date": datetime(2026, 1, 5),
        "base_salary": 3_000_000,
        "daily_allowance": 50_000,
    }
    data.update(overrides)
    return EmployeeCreate(**data)


def sample_calculation(**summary):
    employee = Employee(
        employee_id="EMP-001",
        full_name="Budi Santoso",
        role="Loader",
        base_salary=3_000_000,
        daily_allowance=50_000,
        trip_commission=25_000,
    )
    attendance = AttendanceSummary(employee_id="EMP-001", start=date(2026, 10, 1), end=date(2026, 10, 31), **summary)
    return calculate_payroll(employee, "2026-10", attendance, 50_000, GENERATED_AT)


def deduction(amount: int, type: DeductionType = DeductionType.ADVANCE) -> PayrollDeduction:
    return PayrollDeduction(type=type, description="Kasbon", amount=amount)


class TestPeriods:
    def test_previous_period_wraps_year(self) -> None:
        assert previous_period("2026-01") == "2025-12"
        assert previous_period("2026-10") == "2026-09"

    def test_range_covers_whole_month(self) -> None:
        assert period_range("2026-02") == (date(2026, 2, 1), date(2026, 2, 28))
        assert period_range("2028-02") == (date(2028, 2, 1), date(2028, 2, 29))

    @pytest.mark.parametrize("period", ["2026-13", "2026-1", "26-01", ""])
    def test_invalid_period(self, period) -> None:
        with pytest.raises(ValidationFailure) as exc:
            parse_period(period)
        assert exc.value.field == "period"


class TestCalculation:
    def test_pay_formula(self) -> None:
        calculation = sample_calculation(present=20, late=2, absent=1, overtime_count=3)

        assert calculation.days_worked == 22
        assert calculation.total_allowance == 1_100_000
        assert calculation.total_overtime == 150_000
        assert calculation.commission_per_trip == 25_000
        assert calculation.total_commission == 0
        assert calculation.gross_pay == 4_250_000
        assert calculation.net_pay == 4_250_000
        assert calculation.status == PayrollStatus.DRAFT

    def test_no_attendance_pays_base_salary(self) -> None:
        calculation = sample_calculation()
        assert calculation.gross_pay == 3_000_000
        assert validate_calculation(calculation) == []

    def test_deductions_reduce_net_pay(self) -> None:
        calculation = sample_calculation(present=10)
        calculation = add_deduction(calculation, deduction(200_000))
        calculation = add_deduction(calculation, deduction(50_000, DeductionType.INSURANCE))

        assert calculation.total_deductions == 250_000
        assert calculation.net_pay == calculation.gross_pay - 250_000

        calculation = remove_deduction(calculation, 0)
        assert [d.type for d in calculation.deductions] == [DeductionType.INSURANCE]
        assert calculation.net_pay == calculation.gross_pay - 50_000

    def test_remove_missing_deduction(self) -> None:
        with pytest.raises(ValidationFailure):
            remove_deduction(sample_calculation(), 0)

    def test_validation_messages(self) -> None:
        overdrawn = add_deduction(sample_calculation(), deduction(5_000_000))
        assert validate_calculation(overdrawn) == ["Net pay cannot be negative (deductions exceed gross pay)"]

        too_many_days = sample_calculation(present=32)
        assert validate_calculation(too_many_days) == ["Days worked cannot exceed 31"]


class TestPayrollService:
    async def seed(self, employees, attendance) -> None:
        """EMP-001 works two October days with one overtime event; EMP-002 has no attendance."""
        await employees.create_employee(employee_form())
        await employees.create_employee(employee_form(full_name="Andi", base_salary=2_000_000))
        await employees.create_employee(employee_form(full_name="Rudi", status=EmployeeStatus.INACTIVE))

        await attendance.check_in("EMP-001", at=datetime(2026, 10, 6, 8))
        await attendance.check_out("EMP-001", at=datetime(2026, 10, 6, 16))
        await attendance.check_in("EMP-001", ShiftType.OVERTIME_LOADING, at=datetime(2026, 10, 6, 19))
        await attendance.check_out("EMP-001", at=datetime(2026, 10, 6, 22))
        await attendance.check_in("EMP-001", at=datetime(2026, 10, 7, 9, 40))

    @pytest.mark.asyncio
    async def test_employee_payroll_from_attendance(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        employee = await employees.get_by_code("EMP-001")

        calculation = await payrolls.calculate_employee_payroll(employee, "2026-10")

        assert calculation.days_worked == 2
        assert calculation.overtime_events == 1
        assert calculation.gross_pay == 3_000_000 + 2 * 50_000 + 50_000

    @pytest.mark.asyncio
    async def test_generate_covers_active_employees(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)

        payroll = await payrolls.generate_payroll("2026-10", notes="October")

        assert [c.employee_id for c in calculations_of(payroll)] == ["EMP-001", "EMP-002"]
        assert payroll.total_employees == 2
        assert payroll.total_gross_pay == 3_150_000 + 2_000_000
        assert payroll.total_net_pay == payroll.total_gross_pay
        assert payroll.status == "draft"
        assert (await payrolls.get_by_period("2026-10")).id == payroll.id

    @pytest.mark.asyncio
    async def test_generate_for_named_employees(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        payroll = await payrolls.generate_payroll("2026-10", employee_ids=["EMP-003"])
        assert [c.employee_name for c in calculations_of(payroll)] == ["Rudi"]

        with pytest.raises(RecordNotFoundError):
            await payrolls.calculate_bulk("2026-10", ["EMP-001", "EMP-404"])

    @pytest.mark.asyncio
    async def test_one_payroll_per_period(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        await payrolls.generate_payroll("2026-10")
        with pytest.raises(ValidationFailure) as exc:
            await payrolls.generate_payroll("2026-10")
        assert exc.value.field == "period"

    @pytest.mark.asyncio
    async def test_approval_sets_finalized_at(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        payroll = await payrolls.generate_payroll("2026-10")
        assert payroll.finalized_at is None

        payroll = await payrolls.update_status(payroll.id, PayrollStatus.APPROVED)
        assert payroll.status == "approved"
        assert payroll.finalized_at is not None

    @pytest.mark.asyncio
    async def test_employee_line_status_times_set_once(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        payroll = await payrolls.generate_payroll("2026-10")

        payroll = await payrolls.update_employee_status(payroll.id, "EMP-001", PayrollStatus.APPROVED)
        approved_at = calculations_of(payroll)[0].approved_at
        assert approved_at is not None

        payroll = await payrolls.update_employee_status(payroll.id, "EMP-001", PayrollStatus.PAID)
        line, other = calculations_of(payroll)
        assert line.status == PayrollStatus.PAID
        assert line.approved_at == approved_at
        assert line.paid_at is not None
        assert other.status == PayrollStatus.DRAFT

    @pytest.mark.asyncio
    async def test_deductions_update_totals(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        payroll = await payrolls.generate_payroll("2026-10")

        payroll = await payrolls.add_deduction(payroll.id, "EMP-002", deduction(300_000))
        assert calculations_of(payroll)[1].net_pay == 1_700_000
        assert payroll.total_net_pay == payroll.total_gross_pay - 300_000

        payroll = await payrolls.remove_deduction(payroll.id, "EMP-002", 0)
        assert payroll.total_net_pay == payroll.total_gross_pay

    @pytest.mark.asyncio
    async def test_deduction_rules(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        payroll = await payrolls.generate_payroll("2026-10")

        with pytest.raises(ValidationFailure) as exc:
            await payrolls.add_deduction(payroll.id, "EMP-002", deduction(0))
        assert exc.value.field == "amount"
        with pytest.raises(ValidationFailure):
            await payrolls.add_deduction(payroll.id, "EMP-002", deduction(2_500_000))
        with pytest.raises(RecordNotFoundError):
            await payrolls.add_deduction(payroll.id, "EMP-003", deduction(1_000))

        await payrolls.update_status(payroll.id, PayrollStatus.APPROVED)
        with pytest.raises(ValidationFailure) as exc:
            await payrolls.add_deduction(payroll.id, "EMP-002", deduction(1_000))
        assert exc.value.field == "status"

    @pytest.mark.asyncio
    async def test_paid_payroll_cannot_be_deleted(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        payroll = await payrolls.generate_payroll("2026-10")
        payroll_id = payroll.id
        await payrolls.update_status(payroll_id, PayrollStatus.PAID)

        with pytest.raises(ValidationFailure):
            await payrolls.delete_payroll(payroll_id)

        await payrolls.update_status(payroll_id, PayrollStatus.APPROVED)
        await payrolls.delete_payroll(payroll_id)
        with pytest.raises(RecordNotFoundError):
            await payrolls.get_payroll(payroll_id)

    @pytest.mark.asyncio
    async def test_history_and_summaries(self, employees, attendance, payrolls) -> None:
        await self.seed(employees, attendance)
        await payrolls.generate_payroll("2026-09")
        await payrolls.generate_payroll("2026-10")

        history = await payrolls.employee_history("EMP-001")
        assert [c.period for c in history] == ["2026-10", "2026-09"]
        assert [c.gross_pay for c in history] == [3_150_000, 3_000_000]

        summaries = await payrolls.summaries()
        assert [s.period for s in summaries] == ["2026-10", "2026-09"]
        assert summaries[1].average_per_employee == 2_500_000


class TestEmployeeSalary:
    @pytest.mark.asyncio
    async def test_negative_salary_rejected(self, employees) -> None:
        with pytest.raises(ValidationFailure) as exc:
            await employees.create_employee(employee_form(daily_allowance=-1))
        assert exc.value.field == "daily_allowance"


class TestPayrollApi:
    @pytest.mark.asyncio
    async def test_generate_and_approve(self, client, employees) -> None:
        await employees.create_employee(employee_form())

        preview = await client.post("/api/payroll/preview", json={"period": "2026-10"})
        assert [c["gross_pay"] for c in preview.json()] == [3_000_000]

        response = await client.post("/api/payroll", json={"period": "2026-10"})
        assert response.status_code == 201
        payroll_id = response.json()["id"]

        response = await client.put(f"/api/payroll/{payroll_id}/status", json={"status": "approved"})
        assert response.json()["finalized_at"] is not None

    @pytest.mark.asyncio
    async def test_bad_period_is_422(self, client) -> None:
        response = await client.post("/api/payroll", json={"period": "2026-13"})
        assert response.status_code == 422
