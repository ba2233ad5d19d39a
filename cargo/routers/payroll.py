from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.payroll import (
    PayrollCalculation,
    PayrollDeduction,
    PayrollGenerateRequest,
    PayrollResponse,
    PayrollStatusUpdate,
    PayrollSummary,
)
from cargo.services.payroll import PayrollService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> PayrollService:
    return PayrollService(db)


@router.get("", response_model=List[PayrollResponse])
async def list_payrolls(
    limit: int = Query(12, ge=1, le=120),
    service: PayrollService = Depends(_service),
) -> List[PayrollResponse]:
    return [PayrollResponse.model_validate(p) for p in await service.list_payrolls(limit)]


@router.get("/summaries", response_model=List[PayrollSummary])
async def payroll_summaries(
    limit: int = Query(6, ge=1, le=120),
    service: PayrollService = Depends(_service),
) -> List[PayrollSummary]:
    return await service.summaries(limit)


@router.post("/preview", response_model=List[PayrollCalculation])
async def preview_payroll(
    payload: PayrollGenerateRequest,
    service: PayrollService = Depends(_service),
) -> List[PayrollCalculation]:
    """Calculations for the period without storing them."""
    try:
        return await service.calculate_bulk(payload.period, payload.employee_ids)
    except CargoError as exc:
        raise deps.http_error(exc)


@router.post("", response_model=PayrollResponse, status_code=status.HTTP_201_CREATED)
async def generate_payroll(
    payload: PayrollGenerateRequest,
    service: PayrollService = Depends(_service),
) -> PayrollResponse:
    try:
        payroll = await service.generate_payroll(payload.period, payload.notes, payload.employee_ids)
    except CargoError as exc:
        raise deps.http_error(exc)
    return PayrollResponse.model_validate(payroll)


@router.get("/employees/{employee_id}", response_model=List[PayrollCalculation])
async def employee_history(
    employee_id: str,
    limit: int = Query(6, ge=1, le=120),
    service: PayrollService = Depends(_service),
) -> List[PayrollCalculation]:
    return await service.employee_history(employee_id, limit)


@router.get("/{payroll_id}", response_model=PayrollResponse)
async def get_payroll(payroll_id: str, service: PayrollService = Depends(_service)) -> PayrollResponse:
    try:
        payroll = await service.get_payroll(payroll_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return PayrollResponse.model_validate(payroll)


@router.put("/{payroll_id}/status", response_model=PayrollResponse)
async def update_status(
    payroll_id: str,
    payload: PayrollStatusUpdate,
    service: PayrollService = Depends(_service),
) -> PayrollResponse:
    try:
        payroll = await service.update_status(payroll_id, payload.status)
    except CargoError as exc:
        raise deps.http_error(exc)
    return PayrollResponse.model_validate(payroll)


@router.put("/{payroll_id}/employees/{employee_id}/status", response_model=PayrollResponse)
async def update_employee_status(
    payroll_id: str,
    employee_id: str,
    payload: PayrollStatusUpdate,
    service: PayrollService = Depends(_service),
) -> PayrollResponse:
    try:
        payroll = await service.update_employee_status(payroll_id, employee_id, payload.status)
    except CargoError as exc:
        raise deps.http_error(exc)
    return PayrollResponse.model_validate(payroll)


@router.post("/{payroll_id}/employees/{employee_id}/deductions", response_model=PayrollResponse)
async def add_deduction(
    payroll_id: str,
    employee_id: str,
    payload: PayrollDeduction,
    service: PayrollService = Depends(_service),
) -> PayrollResponse:
    try:
        payroll = await service.add_deduction(payroll_id, employee_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return PayrollResponse.model_validate(payroll)


@router.delete("/{payroll_id}/employees/{employee_id}/deductions/{index}", response_model=PayrollResponse)
async def remove_deduction(
    payroll_id: str,
    employee_id: str,
    index: int,
    service: PayrollService = Depends(_service),
) -> PayrollResponse:
    try:
        payroll = await service.remove_deduction(payroll_id, employee_id, index)
    except CargoError as exc:
        raise deps.http_error(exc)
    return PayrollResponse.model_validate(payroll)


@router.delete("/{payroll_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payroll(payroll_id: str, service: PayrollService = Depends(_service)) -> None:
    try:
        await service.delete_payroll(payroll_id)
    except CargoError as exc:
        raise deps.http_error(exc)
