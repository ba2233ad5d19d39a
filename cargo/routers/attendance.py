from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.attendance import (
    AttendanceResponse,
    AttendanceStatusUpdate,
    AttendanceSummary,
    CheckInRequest,
    CheckOutRequest,
    MarkAbsentRequest,
)
from cargo.services.attendance import AttendanceService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db)


@router.post("/check-in", response_model=AttendanceResponse)
async def check_in(payload: CheckInRequest, service: AttendanceService = Depends(_service)) -> AttendanceResponse:
    try:
        record = await service.check_in(payload.employee_id, payload.shift_type, payload.notes)
    except CargoError as exc:
        raise deps.http_error(exc)
    return AttendanceResponse.model_validate(record)


@router.post("/check-out", response_model=AttendanceResponse)
async def check_out(payload: CheckOutRequest, service: AttendanceService = Depends(_service)) -> AttendanceResponse:
    try:
        record = await service.check_out(payload.employee_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return AttendanceResponse.model_validate(record)


@router.post("/absent", response_model=AttendanceResponse)
async def mark_absent(payload: MarkAbsentRequest, service: AttendanceService = Depends(_service)) -> AttendanceResponse:
    try:
        record = await service.mark_absent(payload.employee_id, payload.date, payload.notes)
    except CargoError as exc:
        raise deps.http_error(exc)
    return AttendanceResponse.model_validate(record)


@router.get("", response_model=List[AttendanceResponse])
async def list_for_date(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    service: AttendanceService = Depends(_service),
) -> List[AttendanceResponse]:
    records = await service.list_for_date(day or service.now().date())
    return [AttendanceResponse.model_validate(r) for r in records]


@router.get("/{employee_id}", response_model=List[AttendanceResponse])
async def list_for_employee(
    employee_id: str,
    start: date = Query(...),
    end: date = Query(...),
    service: AttendanceService = Depends(_service),
) -> List[AttendanceResponse]:
    records = await service.list_for_employee(employee_id, start, end)
    return [AttendanceResponse.model_validate(r) for r in records]


@router.get("/{employee_id}/summary", response_model=AttendanceSummary)
async def attendance_summary(
    employee_id: str,
    start: date = Query(...),
    end: date = Query(...),
    service: AttendanceService = Depends(_service),
) -> AttendanceSummary:
    return await service.summary(employee_id, start, end)


@router.put("/{employee_id}/{day}", response_model=AttendanceResponse)
async def update_status(
    employee_id: str,
    day: date,
    payload: AttendanceStatusUpdate,
    service: AttendanceService = Depends(_service),
) -> AttendanceResponse:
    try:
        record = await service.update_status(employee_id, day, payload.status, payload.notes)
    except CargoError as exc:
        raise deps.http_error(exc)
    return AttendanceResponse.model_validate(record)
