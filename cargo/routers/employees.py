from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.employee import EmployeeCreate, EmployeeResponse, EmployeeUpdate, NextEmployeeId
from cargo.services.counter import SequenceCounterService
from cargo.services.employee import EmployeeService

router = APIRouter()


async def _service(
    db: AsyncSession = Depends(get_db),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> EmployeeService:
    return EmployeeService(db, counters)


@router.get("", response_model=List[EmployeeResponse])
async def list_employees(service: EmployeeService = Depends(_service)) -> List[EmployeeResponse]:
    return [EmployeeResponse.model_validate(e) for e in await service.list_employees()]


@router.get("/next-id", response_model=NextEmployeeId)
async def peek_next_employee_id(service: EmployeeService = Depends(_service)) -> NextEmployeeId:
    return NextEmployeeId(employee_id=await service.peek_next_employee_id())


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(payload: EmployeeCreate, service: EmployeeService = Depends(_service)) -> EmployeeResponse:
    try:
        employee = await service.create_employee(payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return EmployeeResponse.model_validate(employee)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: str, service: EmployeeService = Depends(_service)) -> EmployeeResponse:
    try:
        employee = await service.get_employee(employee_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return EmployeeResponse.model_validate(employee)


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    service: EmployeeService = Depends(_service),
) -> EmployeeResponse:
    try:
        employee = await service.update_employee(employee_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return EmployeeResponse.model_validate(employee)


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(employee_id: str, service: EmployeeService = Depends(_service)) -> None:
    try:
        await service.delete_employee(employee_id)
    except CargoError as exc:
        raise deps.http_error(exc)
