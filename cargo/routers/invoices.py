from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.invoice import BillingInvoiceCreate, BillingInvoiceResponse, InvoiceStatusUpdate
from cargo.services.counter import SequenceCounterService
from cargo.services.invoice import BillingInvoiceService

router = APIRouter()


async def _service(
    db: AsyncSession = Depends(get_db),
    counters: SequenceCounterService = Depends(deps.get_counter_service),
) -> BillingInvoiceService:
    return BillingInvoiceService(db, counters)


@router.get("", response_model=List[BillingInvoiceResponse])
async def list_invoices(service: BillingInvoiceService = Depends(_service)) -> List[BillingInvoiceResponse]:
    return [BillingInvoiceResponse.model_validate(i) for i in await service.list_invoices()]


@router.post("", response_model=BillingInvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: BillingInvoiceCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    service: BillingInvoiceService = Depends(_service),
) -> BillingInvoiceResponse:
    try:
        invoice = await service.create_invoice(payload, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return BillingInvoiceResponse.model_validate(invoice)


@router.get("/{invoice_id}", response_model=BillingInvoiceResponse)
async def get_invoice(invoice_id: str, service: BillingInvoiceService = Depends(_service)) -> BillingInvoiceResponse:
    try:
        invoice = await service.get_invoice(invoice_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return BillingInvoiceResponse.model_validate(invoice)


@router.put("/{invoice_id}/status", response_model=BillingInvoiceResponse)
async def mark_invoice_status(
    invoice_id: str,
    payload: InvoiceStatusUpdate,
    service: BillingInvoiceService = Depends(_service),
) -> BillingInvoiceResponse:
    try:
        invoice = await service.mark_status(invoice_id, payload.status, payload.payment)
    except CargoError as exc:
        raise deps.http_error(exc)
    return BillingInvoiceResponse.model_validate(invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str, service: BillingInvoiceService = Depends(_service)) -> None:
    try:
        await service.delete_invoice(invoice_id)
    except CargoError as exc:
        raise deps.http_error(exc)
