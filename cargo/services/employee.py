from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.employee import Employee, EmployeeStatus
from cargo.schemas.employee import EmployeeCreate, EmployeeUpdate
from cargo.services.counter import EMPLOYEE, SequenceCounterService
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.utils.timeutil import utcnow

SALARY_FIELDS = ("base_salary", "daily_allowance", "trip_commission")
_REQUIRED_FIELDS = ("role", "status", "join_date", *SALARY_FIELDS)


def _check_salary(values: dict) -> None:
    for name in SALARY_FIELDS:
        value = values.get(name)
        if value is not None and value < 0:
            raise ValidationFailure(f"{name.replace('_', ' ').capitalize()} must not be negative", field=name)


class EmployeeService:
    def __init__(self, db: AsyncSession, counters: SequenceCounterService) -> None:
        self.db = db
        self.counters = counters

    async def peek_next_employee_id(self) -> str:
        return await self.counters.peek_next(EMPLOYEE)

    async def create_employee(self, payload: EmployeeCreate) -> Employee:
        if not payload.full_name.strip():
            raise ValidationFailure("Full name is required", field="full_name")
        _check_salary(payload.model_dump(include=set(SALARY_FIELDS)))
        now = utcnow()
        employee = Employee(
            id=str(uuid.uuid4()),
            employee_id=await self.counters.issue_employee(),
            full_name=payload.full_name,
            role=payload.role,
            status=payload.status.value,
            join_date=payload.join_date,
            phone=payload.phone,
            email=payload.email,
            notes=payload.notes,
            base_salary=payload.base_salary,
            daily_allowance=payload.daily_allowance,
            trip_commission=payload.trip_commission,
            created_at=now,
            updated_at=now,
        )
        self.db.add(employee)
        await self.db.commit()
        await self.db.refresh(employee)
        await emit_event(EventType.EMPLOYEE_CREATED, {"id": employee.id})
        return employee

    async def get_employee(self, employee_id: str) -> Employee:
        employee = await self.db.get(Employee, employee_id)
        if employee is None:
            raise RecordNotFoundError("Employee", employee_id)
        return employee

    async def get_by_code(self, code: str) -> Employee:
        """Look up by the human-readable ``EMP-001`` id."""
        result = await self.db.execute(select(Employee).where(Employee.employee_id == code))
        employee = result.scalar_one_or_none()
        if employee is None:
            raise RecordNotFoundError("Employee", code)
        return employee

    async def list_employees(self, status: Optional[EmployeeStatus] = None) -> List[Employee]:
        query = select(Employee)
        if status is not None:
            query = query.where(Employee.status == status.value)
        result = await self.db.execute(query.order_by(Employee.employee_id))
        return list(result.scalars().all())

    async def update_employee(self, employee_id: str, payload: EmployeeUpdate) -> Employee:
        employee = await self.get_employee(employee_id)
        values = payload.model_dump(exclude_unset=True)
        if "full_name" in values and not (values["full_name"] or "").strip():
            raise ValidationFailure("Full name is required", field="full_name")
        _check_salary(values)
        for name, value in values.items():
            if value is None and name in _REQUIRED_FIELDS:
                continue
            setattr(employee, name, getattr(value, "value", value))
        employee.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(employee)
        await emit_event(EventType.EMPLOYEE_UPDATED, {"id": employee.id})
        return employee

    async def delete_employee(self, employee_id: str) -> None:
        employee = await self.get_employee(employee_id)
        await self.db.delete(employee)
        await self.db.commit()
        await emit_event(EventType.EMPLOYEE_DELETED, {"id": employee_id})
