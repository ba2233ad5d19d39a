from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.voyage import ExpenseCreate, ExpenseResponse, ExpenseUpdate, OrphanCleanupResult
from cargo.services.expense import ExpenseService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> ExpenseService:
    return ExpenseService(db)


@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: ExpenseService = Depends(_service),
) -> List[ExpenseResponse]:
    expenses = await service.list_expenses(start, end)
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    service: ExpenseService = Depends(_service),
) -> ExpenseResponse:
    try:
        expense = await service.create_expense(payload, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return ExpenseResponse.model_validate(expense)


@router.post("/cleanup-orphans", response_model=OrphanCleanupResult)
async def cleanup_orphan_expenses(service: ExpenseService = Depends(_service)) -> OrphanCleanupResult:
    return await service.cleanup_orphans()


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(expense_id: str, service: ExpenseService = Depends(_service)) -> ExpenseResponse:
    try:
        expense = await service.get_expense(expense_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return ExpenseResponse.model_validate(expense)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    payload: ExpenseUpdate,
    service: ExpenseService = Depends(_service),
) -> ExpenseResponse:
    try:
        expense = await service.update_expense(expense_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(expense_id: str, service: ExpenseService = Depends(_service)) -> None:
    try:
        await service.delete_expense(expense_id)
    except CargoError as exc:
        raise deps.http_error(exc)
