from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.transaction import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    StatusTransition,
    TransactionBatchCreate,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)
from cargo.services.counter import SequenceCounterService
from cargo.services.transaction import TransactionService, search_transactions

router = APIRouter()


async def _service(
    db: AsyncSession = Depends(get_db),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> TransactionService:
    return TransactionService(db, counters)


@router.get("", response_model=List[TransactionResponse])
async def list_transactions(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    q: Optional[str] = Query(None, description="Search STT, parties, destination, invoice, notes"),
    service: TransactionService = Depends(_service),
) -> List[TransactionResponse]:
    transactions = await service.list_transactions(start, end)
    if q:
        transactions = search_transactions(transactions, q)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    service: TransactionService = Depends(_service),
) -> TransactionResponse:
    try:
        sender = await service.resolve_sender(payload.sender, payload.sender_id)
        transaction = await service.create_transaction(payload, sender, payload.receiver, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return TransactionResponse.model_validate(transaction)


@router.post("/batch", response_model=List[TransactionResponse], status_code=status.HTTP_201_CREATED)
async def create_transactions(
    payload: TransactionBatchCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    service: TransactionService = Depends(_service),
) -> List[TransactionResponse]:
    try:
        sender = await service.resolve_sender(payload.sender, payload.sender_id)
        transactions = await service.create_transactions(payload, sender, payload.receivers, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_transactions(
    payload: BulkDeleteRequest,
    service: TransactionService = Depends(_service),
) -> BulkDeleteResponse:
    try:
        deleted = await service.bulk_delete(payload.ids)
    except CargoError as exc:
        raise deps.http_error(exc)
    return BulkDeleteResponse(deleted_ids=deleted)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    service: TransactionService = Depends(_service),
) -> TransactionResponse:
    try:
        transaction = await service.get_transaction(transaction_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return TransactionResponse.model_validate(transaction)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    service: TransactionService = Depends(_service),
) -> TransactionResponse:
    try:
        transaction = await service.update_transaction(transaction_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return TransactionResponse.model_validate(transaction)


@router.post("/{transaction_id}/status", response_model=TransactionResponse)
async def transition_status(
    transaction_id: str,
    payload: StatusTransition,
    service: TransactionService = Depends(_service),
) -> TransactionResponse:
    try:
        transaction = await service.transition_status(transaction_id, payload.status, payload.note)
    except CargoError as exc:
        raise deps.http_error(exc)
    return TransactionResponse.model_validate(transaction)


@router.put("/{transaction_id}/delivery-note", response_model=TransactionResponse)
async def update_delivery_note(
    transaction_id: str,
    payload: Dict[str, Any],
    service: TransactionService = Depends(_service),
) -> TransactionResponse:
    try:
        transaction = await service.update_delivery_note(transaction_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return TransactionResponse.model_validate(transaction)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    service: TransactionService = Depends(_service),
) -> None:
    try:
        await service.delete_transaction(transaction_id)
    except CargoError as exc:
        raise deps.http_error(exc)
