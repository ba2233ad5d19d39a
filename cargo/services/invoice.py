"""Consolidated billing invoices grouping several shipment transactions for one client."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.invoice import BillingInvoice, InvoiceStatus
from cargo.models.transaction import Settlement, ShipmentTransaction
from cargo.schemas.invoice import BillingInvoiceCreate, PaymentDetails
from cargo.services.counter import SequenceCounterService
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.services.voyage import merge_ids
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

TRANSFER_METHOD = "Transfer"


def settlement_for(method: Optional[str]) -> Settlement:
    return Settlement.TF if method == TRANSFER_METHOD else Settlement.CASH


class BillingInvoiceService:
    def __init__(self, db: AsyncSession, counters: SequenceCounterService) -> None:
        self.db = db
        self.counters = counters

    async def create_invoice(self, payload: BillingInvoiceCreate, user_id: Optional[str] = None) -> BillingInvoice:
        if not payload.client_name.strip():
            raise ValidationFailure("Client name is required", field="client_name")
        if payload.due_date < payload.issue_date:
            raise ValidationFailure("Due date cannot precede the issue date", field="due_date")

        transaction_ids = merge_ids([], payload.transaction_ids)
        total_amount = payload.total_amount
        if total_amount is None:
            transactions = await self._load_transactions(transaction_ids)
            total_amount = sum(t.amount or 0 for t in transactions)
        if total_amount < 0:
            raise ValidationFailure("Total amount must not be negative", field="total_amount")

        now = utcnow()
        invoice = BillingInvoice(
            id=str(uuid.uuid4()),
            user_id=user_id,
            invoice_number=await self.counters.issue_billing_invoice(payload.issue_date),
            client_id=payload.client_id,
            client_name=payload.client_name,
            client_address=payload.client_address,
            transaction_ids=transaction_ids,
            total_amount=total_amount,
            issue_date=payload.issue_date,
            due_date=payload.due_date,
            status=InvoiceStatus.UNPAID.value,
            notes=payload.notes,
            created_at=now,
            updated_at=now,
        )
        self.db.add(invoice)
        await self.db.commit()
        await self.db.refresh(invoice)
        logger.info(f"Created billing invoice {invoice.invoice_number} for {invoice.client_name}")
        await emit_event(EventType.INVOICE_CREATED, {"id": invoice.id}, user_id=user_id)
        return invoice

    async def get_invoice(self, invoice_id: str) -> BillingInvoice:
        invoice = await self.db.get(BillingInvoice, invoice_id)
        if invoice is None:
            raise RecordNotFoundError("Invoice", invoice_id)
        return invoice

    async def list_invoices(self) -> List[BillingInvoice]:
        result = await self.db.execute(select(BillingInvoice).order_by(BillingInvoice.issue_date.desc()))
        return list(result.scalars().all())

    async def mark_status(
        self,
        invoice_id: str,
        status: InvoiceStatus,
        payment: Optional[PaymentDetails] = None,
    ) -> BillingInvoice:
        """Update the invoice and the settlement of its linked transactions. All or nothing.

        Paying settles every linked transaction (``TF`` for transfers, ``Cash``
        otherwise); every one of them must still exist. Moving a paid invoice
        back to Unpaid or Cancelled returns the transactions it settled to
        ``Pending``; transactions deleted in the meantime are skipped.
        """
        try:
            invoice = await self.get_invoice(invoice_id)
            was_paid = invoice.status == InvoiceStatus.PAID.value
            invoice.status = status.value
            invoice.updated_at = utcnow()
            if status == InvoiceStatus.PAID and payment is not None:
                invoice.payment_date = payment.date
                invoice.payment_method = payment.method
                invoice.payment_ref = payment.ref

            settled: List[str] = []
            if status == InvoiceStatus.PAID:
                settlement = settlement_for(payment.method if payment else None)
                for transaction in await self._load_transactions(invoice.transaction_ids or []):
                    transaction.settlement = settlement.value
                    transaction.updated_at = utcnow()
                    settled.append(transaction.id)
            elif was_paid:
                for transaction in await self._existing_transactions(invoice.transaction_ids or []):
                    if transaction.settlement != Settlement.PENDING.value:
                        transaction.settlement = Settlement.PENDING.value
                        transaction.updated_at = utcnow()
                        settled.append(transaction.id)

            await self.db.commit()
        except (RecordNotFoundError, SQLAlchemyError) as e:
            await self.db.rollback()
            logger.error(f"Marking invoice {invoice_id} as {status.value} failed: {e}")
            raise

        await self.db.refresh(invoice)
        await emit_event(EventType.INVOICE_UPDATED, {"id": invoice.id, "status": invoice.status})
        for transaction_id in settled:
            await emit_event(EventType.TRANSACTION_UPDATED, {"id": transaction_id})
        return invoice

    async def delete_invoice(self, invoice_id: str) -> None:
        invoice = await self.get_invoice(invoice_id)
        await self.db.delete(invoice)
        await self.db.commit()
        await emit_event(EventType.INVOICE_DELETED, {"id": invoice_id})

    async def _existing_transactions(self, ids: List[str]) -> List[ShipmentTransaction]:
        if not ids:
            return []
        result = await self.db.execute(select(ShipmentTransaction).where(ShipmentTransaction.id.in_(ids)))
        return list(result.scalars().all())

    async def _load_transactions(self, ids: List[str]) -> List[ShipmentTransaction]:
        by_id = {t.id: t for t in await self._existing_transactions(ids)}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise RecordNotFoundError("Transaction", ", ".join(missing))
        return [by_id[i] for i in ids]
