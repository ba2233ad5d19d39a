"""
Monthly payroll.

An employee's pay for a ``YYYY-MM`` period is built from their salary
configuration and that month's attendance:

    allowance  = daily allowance x days worked (present + late)
    overtime   = loading/unloading events x overtime rate per event
    gross      = base salary + allowance + trip commission + overtime
    net        = gross - deductions

A monthly payroll stores one calculation per employee plus the totals, and
moves from draft to approved to paid. Only drafts accept deduction edits and
a paid payroll cannot be deleted.
"""

from __future__ import annotations

import calendar
import logging
import re
import uuid
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.config import Settings, get_settings
from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.employee import Employee, EmployeeStatus
from cargo.models.payroll import MonthlyPayroll, PayrollStatus
from cargo.schemas.attendance import AttendanceSummary
from cargo.schemas.payroll import PERIOD_PATTERN, PayrollCalculation, PayrollDeduction, PayrollSummary
from cargo.services.attendance import AttendanceService
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

MAX_DAYS_WORKED = 31

_PERIOD = re.compile(PERIOD_PATTERN)


def parse_period(period: str) -> Tuple[int, int]:
    if not _PERIOD.match(period or ""):
        raise ValidationFailure(f"Period must look like 2026-01, got {period!r}", field="period")
    year, month = period.split("-")
    return int(year), int(month)


def period_range(period: str) -> Tuple[date, date]:
    """First and last calendar day of the period."""
    year, month = parse_period(period)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def current_period(at: datetime) -> str:
    return f"{at:%Y-%m}"


def previous_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 1:
        return f"{year - 1}-12"
    return f"{year}-{month - 1:02d}"


def calculate_payroll(
    employee: Employee,
    period: str,
    attendance: AttendanceSummary,
    overtime_rate: int,
    generated_at: datetime,
) -> PayrollCalculation:
    days_worked = attendance.days_worked
    total_allowance = (employee.daily_allowance or 0) * days_worked
    total_overtime = attendance.overtime_count * overtime_rate
    # TODO: count trips once voyages record their crew; commission stays zero until then
    total_commission = 0
    base_salary = employee.base_salary or 0
    gross_pay = base_salary + total_allowance + total_commission + total_overtime

    return PayrollCalculation(
        employee_id=employee.employee_id,
        employee_name=employee.full_name,
        employee_role=employee.role,
        period=period,
        base_salary=base_salary,
        daily_allowance=employee.daily_allowance or 0,
        days_worked=days_worked,
        total_allowance=total_allowance,
        trips_completed=0,
        commission_per_trip=employee.trip_commission or 0,
        total_commission=total_commission,
        overtime_events=attendance.overtime_count,
        overtime_rate=overtime_rate,
        total_overtime=total_overtime,
        deductions=[],
        total_deductions=0,
        gross_pay=gross_pay,
        net_pay=gross_pay,
        generated_at=generated_at,
    )


def _with_deductions(calculation: PayrollCalculation, deductions: List[PayrollDeduction]) -> PayrollCalculation:
    total = sum(d.amount for d in deductions)
    return calculation.model_copy(
        update={"deductions": deductions, "total_deductions": total, "net_pay": calculation.gross_pay - total}
    )


def add_deduction(calculation: PayrollCalculation, deduction: PayrollDeduction) -> PayrollCalculation:
    return _with_deductions(calculation, [*calculation.deductions, deduction])


def remove_deduction(calculation: PayrollCalculation, index: int) -> PayrollCalculation:
    if not 0 <= index < len(calculation.deductions):
        raise ValidationFailure(f"No deduction at position {index}", field="index")
    return _with_deductions(calculation, [d for i, d in enumerate(calculation.deductions) if i != index])


def validate_calculation(calculation: PayrollCalculation) -> List[str]:
    """Human-readable problems with a calculation; empty when it is sound."""
    errors = []
    if calculation.days_worked < 0:
        errors.append("Days worked cannot be negative")
    if calculation.gross_pay < 0:
        errors.append("Gross pay cannot be negative")
    if calculation.net_pay < 0:
        errors.append("Net pay cannot be negative (deductions exceed gross pay)")
    if calculation.days_worked > MAX_DAYS_WORKED:
        errors.append(f"Days worked cannot exceed {MAX_DAYS_WORKED}")
    return errors


def summarize_payroll(payroll: MonthlyPayroll) -> PayrollSummary:
    employees = payroll.total_employees or 0
    return PayrollSummary(
        period=payroll.period,
        total_gross_pay=payroll.total_gross_pay,
        total_net_pay=payroll.total_net_pay,
        total_employees=employees,
        average_per_employee=payroll.total_net_pay / employees if employees else 0.0,
        status=PayrollStatus(payroll.status),
    )


def calculations_of(payroll: MonthlyPayroll) -> List[PayrollCalculation]:
    return [PayrollCalculation.model_validate(c) for c in payroll.calculations or []]


class PayrollService:
    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.attendance = AttendanceService(db, self.settings)

    async def calculate_employee_payroll(self, employee: Employee, period: str) -> PayrollCalculation:
        start, end = period_range(period)
        summary = await self.attendance.summary(employee.employee_id, start, end)
        return calculate_payroll(employee, period, summary, self.settings.overtime_rate_per_event, utcnow())

    async def calculate_bulk(
        self,
        period: str,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> List[PayrollCalculation]:
        """Calculations for the given employee ids (``EMP-001`` form), or every active employee."""
        parse_period(period)
        query = select(Employee).order_by(Employee.employee_id)
        if employee_ids is None:
            query = query.where(Employee.status == EmployeeStatus.ACTIVE.value)
        else:
            query = query.where(Employee.employee_id.in_(list(employee_ids)))
        result = await self.db.execute(query)
        employees = list(result.scalars().all())

        if employee_ids is not None:
            missing = sorted(set(employee_ids) - {e.employee_id for e in employees})
            if missing:
                raise RecordNotFoundError("Employee", ", ".join(missing))
        return [await self.calculate_employee_payroll(employee, period) for employee in employees]

    async def generate_payroll(
        self,
        period: str,
        notes: Optional[str] = None,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> MonthlyPayroll:
        """Calculate and store the draft payroll for a period. One payroll per period."""
        if await self.get_by_period(period) is not None:
            raise ValidationFailure(f"Payroll for {period} already exists", field="period")
        calculations = await self.calculate_bulk(period, employee_ids)
        for calculation in calculations:
            errors = validate_calculation(calculation)
            if errors:
                raise ValidationFailure(f"{calculation.employee_id}: {'; '.join(errors)}", field="calculations")

        now = utcnow()
        payroll = MonthlyPayroll(
            id=str(uuid.uuid4()),
            period=period,
            status=PayrollStatus.DRAFT.value,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self._store(payroll, calculations)
        self.db.add(payroll)
        await self.db.commit()
        await self.db.refresh(payroll)
        logger.info(
            f"Generated payroll {period} for {payroll.total_employees} employees, net {payroll.total_net_pay}"
        )
        await emit_event(EventType.PAYROLL_CREATED, {"id": payroll.id, "period": period})
        return payroll

    async def get_payroll(self, payroll_id: str) -> MonthlyPayroll:
        payroll = await self.db.get(MonthlyPayroll, payroll_id)
        if payroll is None:
            raise RecordNotFoundError("Payroll", payroll_id)
        return payroll

    async def get_by_period(self, period: str) -> Optional[MonthlyPayroll]:
        parse_period(period)
        result = await self.db.execute(select(MonthlyPayroll).where(MonthlyPayroll.period == period))
        return result.scalar_one_or_none()

    async def list_payrolls(self, limit: int = 12) -> List[MonthlyPayroll]:
        result = await self.db.execute(select(MonthlyPayroll).order_by(MonthlyPayroll.period.desc()).limit(limit))
        return list(result.scalars().all())

    async def employee_history(self, employee_id: str, limit: int = 6) -> List[PayrollCalculation]:
        """The employee's calculations from the most recent ``limit`` payrolls, newest first."""
        history = []
        for payroll in await self.list_payrolls(limit):
            history.extend(c for c in calculations_of(payroll) if c.employee_id == employee_id)
        return history

    async def summaries(self, limit: int = 6) -> List[PayrollSummary]:
        return [summarize_payroll(p) for p in await self.list_payrolls(limit)]

    async def update_status(self, payroll_id: str, status: PayrollStatus) -> MonthlyPayroll:
        payroll = await self.get_payroll(payroll_id)
        payroll.status = status.value
        payroll.updated_at = utcnow()
        if status == PayrollStatus.APPROVED:
            payroll.finalized_at = payroll.updated_at
        await self.db.commit()
        await self.db.refresh(payroll)
        await emit_event(EventType.PAYROLL_UPDATED, {"id": payroll.id, "status": status.value})
        return payroll

    async def update_employee_status(self, payroll_id: str, employee_id: str, status: PayrollStatus) -> MonthlyPayroll:
        """Approve or pay one employee's line. Approval and payment times are set once."""
        payroll = await self.get_payroll(payroll_id)
        now = utcnow()

        def apply(calculation: PayrollCalculation) -> PayrollCalculation:
            update = {"status": status}
            if status == PayrollStatus.APPROVED and calculation.approved_at is None:
                update["approved_at"] = now
            if status == PayrollStatus.PAID and calculation.paid_at is None:
                update["paid_at"] = now
            return calculation.model_copy(update=update)

        return await self._edit_line(payroll, employee_id, apply, draft_only=False)

    async def add_deduction(self, payroll_id: str, employee_id: str, deduction: PayrollDeduction) -> MonthlyPayroll:
        if deduction.amount <= 0:
            raise ValidationFailure("Deduction amount must be greater than 0", field="amount")
        payroll = await self.get_payroll(payroll_id)
        return await self._edit_line(payroll, employee_id, lambda c: add_deduction(c, deduction))

    async def remove_deduction(self, payroll_id: str, employee_id: str, index: int) -> MonthlyPayroll:
        payroll = await self.get_payroll(payroll_id)
        return await self._edit_line(payroll, employee_id, lambda c: remove_deduction(c, index))

    async def delete_payroll(self, payroll_id: str) -> None:
        payroll = await self.get_payroll(payroll_id)
        if payroll.status == PayrollStatus.PAID.value:
            raise ValidationFailure("Cannot delete a paid payroll", field="status")
        await self.db.delete(payroll)
        await self.db.commit()
        logger.info(f"Deleted payroll {payroll.period}")
        await emit_event(EventType.PAYROLL_DELETED, {"id": payroll_id})

    async def _edit_line(
        self,
        payroll: MonthlyPayroll,
        employee_id: str,
        change: Callable[[PayrollCalculation], PayrollCalculation],
        draft_only: bool = True,
    ) -> MonthlyPayroll:
        if draft_only and payroll.status != PayrollStatus.DRAFT.value:
            raise ValidationFailure(
                f"Payroll {payroll.period} is {payroll.status}; only drafts can be edited", field="status"
            )
        calculations = calculations_of(payroll)
        positions = [i for i, c in enumerate(calculations) if c.employee_id == employee_id]
        if not positions:
            raise RecordNotFoundError("Payroll line", f"{payroll.period}/{employee_id}")

        edited = change(calculations[positions[0]])
        errors = validate_calculation(edited)
        if errors:
            raise ValidationFailure("; ".join(errors), field="deductions")
        calculations[positions[0]] = edited

        self._store(payroll, calculations)
        payroll.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(payroll)
        await emit_event(EventType.PAYROLL_UPDATED, {"id": payroll.id, "employee_id": employee_id})
        return payroll

    @staticmethod
    def _store(payroll: MonthlyPayroll, calculations: Iterable[PayrollCalculation]) -> None:
        calculations = list(calculations)
        payroll.calculations = [c.model_dump(mode="json") for c in calculations]
        payroll.total_gross_pay = sum(c.gross_pay for c in calculations)
        payroll.total_net_pay = sum(c.net_pay for c in calculations)
        payroll.total_employees = len(calculations)
