from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.reporting import VoyageSummary
from cargo.schemas.voyage import (
    ExpenseResponse,
    ExpenseTotals,
    TransactionAssignment,
    VoyageCreate,
    VoyageResponse,
    VoyageUpdate,
)
from cargo.services.counter import SequenceCounterService
from cargo.services.reporting import ReportingService
from cargo.services.voyage import VoyageService

router = APIRouter()


async def _service(
    db: AsyncSession = Depends(get_db),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> VoyageService:
    return VoyageService(db, counters)


@router.get("", response_model=List[VoyageResponse])
async def list_voyages(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: VoyageService = Depends(_service),
) -> List[VoyageResponse]:
    voyages = await service.list_voyages(start, end)
    return [VoyageResponse.model_validate(v) for v in voyages]


@router.post("", response_model=VoyageResponse, status_code=status.HTTP_201_CREATED)
async def create_voyage(
    payload: VoyageCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    service: VoyageService = Depends(_service),
) -> VoyageResponse:
    try:
        voyage = await service.create_voyage(payload, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return VoyageResponse.model_validate(voyage)


@router.get("/{voyage_id}", response_model=VoyageResponse)
async def get_voyage(voyage_id: str, service: VoyageService = Depends(_service)) -> VoyageResponse:
    try:
        voyage = await service.get_voyage(voyage_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return VoyageResponse.model_validate(voyage)


@router.patch("/{voyage_id}", response_model=VoyageResponse)
async def update_voyage(
    voyage_id: str,
    payload: VoyageUpdate,
    service: VoyageService = Depends(_service),
) -> VoyageResponse:
    try:
        voyage = await service.update_voyage(voyage_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return VoyageResponse.model_validate(voyage)


@router.post("/{voyage_id}/transactions", response_model=VoyageResponse)
async def assign_transactions(
    voyage_id: str,
    payload: TransactionAssignment,
    service: VoyageService = Depends(_service),
) -> VoyageResponse:
    try:
        voyage = await service.assign_transactions(voyage_id, payload.transaction_ids)
    except CargoError as exc:
        raise deps.http_error(exc)
    return VoyageResponse.model_validate(voyage)


@router.post("/{voyage_id}/transactions/remove", response_model=VoyageResponse)
async def remove_transactions(
    voyage_id: str,
    payload: TransactionAssignment,
    service: VoyageService = Depends(_service),
) -> VoyageResponse:
    try:
        voyage = await service.remove_transactions(voyage_id, payload.transaction_ids)
    except CargoError as exc:
        raise deps.http_error(exc)
    return VoyageResponse.model_validate(voyage)


@router.get("/{voyage_id}/expenses", response_model=List[ExpenseResponse])
async def list_voyage_expenses(voyage_id: str, service: VoyageService = Depends(_service)) -> List[ExpenseResponse]:
    expenses = await service.expenses.list_by_voyage(voyage_id)
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.get("/{voyage_id}/expense-totals", response_model=ExpenseTotals)
async def voyage_expense_totals(voyage_id: str, service: VoyageService = Depends(_service)) -> ExpenseTotals:
    return await service.expenses.voyage_totals(voyage_id)


@router.get("/{voyage_id}/summary", response_model=VoyageSummary)
async def voyage_summary(voyage_id: str, db: AsyncSession = Depends(get_db)) -> VoyageSummary:
    try:
        return await ReportingService(db).voyage_summary(voyage_id)
    except CargoError as exc:
        raise deps.http_error(exc)


@router.delete("/{voyage_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_voyage(voyage_id: str, service: VoyageService = Depends(_service)) -> None:
    try:
        await service.delete_voyage(voyage_id)
    except CargoError as exc:
        raise deps.http_error(exc)
