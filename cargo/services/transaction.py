"""
Shipment transaction lifecycle.

Creation resolves the STT and invoice numbers (manual values bypass the
counters), prices the shipment, freezes the PPN rate on the record and seeds
the status history. Status changes are permissive: any status may follow any
other. The history is append-only and its last entry always carries the
current status.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.config import Settings
from cargo.core.errors import PartialFailureError, RecordNotFoundError, ValidationFailure
from cargo.models.transaction import (
    TERMINAL_STATUSES,
    PricingMode,
    ShipmentTransaction,
    TransactionStatus,
)
from cargo.schemas.transaction import (
    PartySnapshot,
    SenderSnapshot,
    TransactionForm,
    TransactionUpdate,
)
from cargo.services import tax
from cargo.services.client import ClientService
from cargo.services.counter import SequenceCounterService
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.services.settings import TaxSettingsService
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

CREATED_NOTE = "created"
EDIT_NOTE = "status changed via edit"

SEARCH_FIELDS = ("stt_number", "sender_name", "receiver_name", "destination", "invoice_number", "notes")

_SIMPLE_FIELDS = (
    "shipment_date",
    "destination",
    "collo",
    "weight",
    "weight_unit",
    "pricing_mode",
    "unit_price",
    "invoice_number",
    "payment_method",
    "settlement",
    "notes",
    "contents",
)
# Nullable columns; an explicit null in a patch clears them
_CLEARABLE_FIELDS = ("notes", "contents")


def history_entry(status: TransactionStatus | str, note: Optional[str] = None) -> Dict[str, Any]:
    return {
        "status": TransactionStatus(status).value,
        "timestamp": utcnow().isoformat(),
        "note": note,
    }


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _check_pricing(pricing_mode: PricingMode | str, unit_price: Optional[int], amount: Optional[int]) -> None:
    if PricingMode(pricing_mode) == PricingMode.REGULAR:
        if unit_price is None or unit_price <= 0:
            raise ValidationFailure("Unit price must be greater than 0 for regular pricing", field="unit_price")
    elif amount is None or amount <= 0:
        raise ValidationFailure("Amount must be greater than 0 for borongan pricing", field="amount")


def _check_rate(rate: Optional[float]) -> None:
    if rate is not None and not 0 <= rate <= 1:
        raise ValidationFailure("PPN rate must be between 0 and 1", field="ppn_rate")


def validate_form(form: TransactionForm, sender: Optional[SenderSnapshot], receiver: Optional[PartySnapshot]) -> None:
    """Raise ValidationFailure for the first violated precondition."""
    if sender is None or _blank(sender.id):
        raise ValidationFailure("Sender is required", field="sender")
    if receiver is None or _blank(receiver.name):
        raise ValidationFailure("Receiver name is required", field="receiver")
    if form.collo <= 0:
        raise ValidationFailure("Collo must be greater than 0", field="collo")
    _check_pricing(form.pricing_mode, form.unit_price, form.amount)
    _check_rate(form.ppn_rate)


def search_transactions(transactions: Iterable[ShipmentTransaction], term: str) -> List[ShipmentTransaction]:
    """Case-insensitive substring match over the searchable text fields."""
    needle = term.strip().lower()
    if not needle:
        return list(transactions)
    matches = []
    for transaction in transactions:
        for field_name in SEARCH_FIELDS:
            value = getattr(transaction, field_name, None)
            if value and needle in value.lower():
                matches.append(transaction)
                break
    return matches


class TransactionService:
    def __init__(self, db: AsyncSession, counters: SequenceCounterService, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.counters = counters
        self.tax_settings = TaxSettingsService(db, settings)

    async def resolve_sender(
        self,
        sender: Optional[SenderSnapshot],
        client_id: Optional[str] = None,
    ) -> Optional[SenderSnapshot]:
        """An explicit snapshot wins; otherwise the stored client's current details are copied."""
        if sender is not None or _blank(client_id):
            return sender
        try:
            return await ClientService(self.db).sender_snapshot(client_id.strip())
        except RecordNotFoundError as e:
            raise ValidationFailure(f"Sender client not found: {client_id}", field="sender_id") from e

    async def create_transaction(
        self,
        form: TransactionForm,
        sender: SenderSnapshot,
        receiver: PartySnapshot,
        user_id: Optional[str] = None,
    ) -> ShipmentTransaction:
        validate_form(form, sender, receiver)
        rate = await self._form_rate(form)
        transaction = await self._build(form, sender, receiver, rate, user_id)
        self.db.add(transaction)
        await self.db.commit()
        await self.db.refresh(transaction)
        logger.info(f"Created transaction {transaction.id} ({transaction.stt_number})")
        await emit_event(EventType.TRANSACTION_CREATED, {"id": transaction.id}, user_id=user_id)
        return transaction

    async def create_transactions(
        self,
        form: TransactionForm,
        sender: SenderSnapshot,
        receivers: Sequence[PartySnapshot],
        user_id: Optional[str] = None,
    ) -> List[ShipmentTransaction]:
        """One transaction per receiver. All receivers are validated before anything is written."""
        if not receivers:
            raise ValidationFailure("At least one receiver is required", field="receivers")
        for receiver in receivers:
            validate_form(form, sender, receiver)
        if len(receivers) > 1 and not _blank(form.stt_number):
            raise ValidationFailure("A manual STT number can only be used for a single receiver", field="stt_number")

        # Every number is issued before the session holds pending rows; a flush
        # would take the SQLite write lock the counter sessions need
        rate = await self._form_rate(form)
        transactions = [await self._build(form, sender, receiver, rate, user_id) for receiver in receivers]
        self.db.add_all(transactions)
        await self.db.commit()

        for transaction in transactions:
            await self.db.refresh(transaction)
            await emit_event(EventType.TRANSACTION_CREATED, {"id": transaction.id}, user_id=user_id)
        logger.info(f"Created {len(transactions)} transactions for sender {sender.id}")
        return transactions

    async def get_transaction(self, transaction_id: str) -> ShipmentTransaction:
        transaction = await self.db.get(ShipmentTransaction, transaction_id)
        if transaction is None:
            raise RecordNotFoundError("Transaction", transaction_id)
        return transaction

    async def list_transactions(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ShipmentTransaction]:
        query = select(ShipmentTransaction)
        if start is not None:
            query = query.where(ShipmentTransaction.shipment_date >= start)
        if end is not None:
            query = query.where(ShipmentTransaction.shipment_date <= end)
        result = await self.db.execute(query.order_by(ShipmentTransaction.shipment_date.desc()))
        return list(result.scalars().all())

    async def get_many(self, ids: Sequence[str]) -> List[ShipmentTransaction]:
        """Existing transactions among ``ids``, in the order given. Missing ids are skipped."""
        if not ids:
            return []
        result = await self.db.execute(select(ShipmentTransaction).where(ShipmentTransaction.id.in_(list(ids))))
        by_id = {transaction.id: transaction for transaction in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def update_transaction(self, transaction_id: str, payload: TransactionUpdate) -> ShipmentTransaction:
        transaction = await self.get_transaction(transaction_id)
        fields = payload.model_fields_set

        if "collo" in fields and (payload.collo is None or payload.collo <= 0):
            raise ValidationFailure("Collo must be greater than 0", field="collo")
        if "ppn_rate" in fields:
            _check_rate(payload.ppn_rate)
        if "sender" in fields and (payload.sender is None or _blank(payload.sender.id)):
            raise ValidationFailure("Sender is required", field="sender")
        if "receiver" in fields and (payload.receiver is None or _blank(payload.receiver.name)):
            raise ValidationFailure("Receiver name is required", field="receiver")

        pricing_mode = payload.pricing_mode if "pricing_mode" in fields else transaction.pricing_mode
        unit_price = payload.unit_price if "unit_price" in fields else transaction.unit_price
        amount = payload.amount if "amount" in fields else transaction.amount
        _check_pricing(pricing_mode, unit_price, amount)

        for name in _SIMPLE_FIELDS:
            if name not in fields:
                continue
            value = getattr(payload, name)
            if value is None and name not in _CLEARABLE_FIELDS:
                continue
            setattr(transaction, name, value.value if hasattr(value, "value") else value)
        if "stt_number" in fields and not _blank(payload.stt_number):
            transaction.stt_number = payload.stt_number.strip()
        if "sender" in fields:
            transaction.sender_id = payload.sender.id
            self._apply_party(transaction, "sender", payload.sender)
        if "receiver" in fields:
            self._apply_party(transaction, "receiver", payload.receiver)

        await self._reprice(transaction, payload, fields)

        if "status" in fields and payload.status is not None and payload.status.value != transaction.status:
            self._append_status(transaction, payload.status, EDIT_NOTE)

        transaction.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(transaction)
        await emit_event(EventType.TRANSACTION_UPDATED, {"id": transaction.id})
        return transaction

    async def transition_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        note: Optional[str] = None,
    ) -> ShipmentTransaction:
        """Log a status event. Appends to the history even when the status is unchanged."""
        transaction = await self.get_transaction(transaction_id)
        self._append_status(transaction, status, note)
        transaction.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(transaction)
        await emit_event(EventType.TRANSACTION_UPDATED, {"id": transaction.id, "status": status.value})
        return transaction

    async def update_delivery_note(self, transaction_id: str, data: Dict[str, Any]) -> ShipmentTransaction:
        transaction = await self.get_transaction(transaction_id)
        transaction.delivery_note = dict(data)
        transaction.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(transaction)
        await emit_event(EventType.TRANSACTION_UPDATED, {"id": transaction.id})
        return transaction

    async def delete_transaction(self, transaction_id: str) -> None:
        """Hard delete. Voyages keep any dangling reference to the id."""
        transaction = await self.get_transaction(transaction_id)
        await self.db.delete(transaction)
        await self.db.commit()
        await emit_event(EventType.TRANSACTION_DELETED, {"id": transaction_id})

    async def bulk_delete(self, ids: Sequence[str]) -> List[str]:
        """Sequential independent deletes. Already deleted records stay deleted on failure."""
        deleted: List[str] = []
        for transaction_id in ids:
            try:
                await self.delete_transaction(transaction_id)
            except (RecordNotFoundError, SQLAlchemyError) as e:
                await self.db.rollback()
                logger.error(f"Bulk delete stopped at {transaction_id} after {len(deleted)} deletes: {e}")
                raise PartialFailureError(
                    f"Deleted {len(deleted)} of {len(ids)} transactions; failed at {transaction_id}",
                    completed_ids=deleted,
                    failed_id=transaction_id,
                ) from e
            deleted.append(transaction_id)
        return deleted

    async def _form_rate(self, form: TransactionForm) -> float:
        if not form.is_taxable:
            return 0.0
        defaults = await self.tax_settings.get_tax_settings()
        return tax.resolve_rate(form.ppn_rate, None, defaults.default_ppn_rate)

    async def _build(
        self,
        form: TransactionForm,
        sender: SenderSnapshot,
        receiver: PartySnapshot,
        rate: float,
        user_id: Optional[str],
    ) -> ShipmentTransaction:
        if form.pricing_mode == PricingMode.REGULAR:
            breakdown = tax.exclusive(tax.regular_subtotal(form.unit_price, form.weight), form.is_taxable, rate)
            unit_price = form.unit_price
        else:
            breakdown = tax.inclusive(form.amount, form.is_taxable, rate)
            unit_price = 0

        stt_number = form.stt_number.strip() if not _blank(form.stt_number) else await self.counters.issue_stt()
        invoice_number = (
            form.invoice_number.strip()
            if not _blank(form.invoice_number)
            else await self.counters.issue_invoice(form.is_taxable)
        )

        now = utcnow()
        transaction = ShipmentTransaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            shipment_date=form.shipment_date,
            destination=form.destination,
            stt_number=stt_number,
            sender_id=sender.id,
            collo=form.collo,
            weight=form.weight,
            weight_unit=form.weight_unit.value,
            pricing_mode=form.pricing_mode.value,
            unit_price=unit_price,
            amount=breakdown.total,
            invoice_number=invoice_number,
            payment_method=form.payment_method.value,
            settlement=form.settlement.value,
            is_taxable=form.is_taxable,
            ppn_rate=rate,
            ppn=breakdown.tax,
            notes=form.notes,
            contents=form.contents,
            status=form.status.value,
            status_history=[history_entry(form.status, CREATED_NOTE)],
            created_at=now,
            updated_at=now,
        )
        self._apply_party(transaction, "sender", sender)
        self._apply_party(transaction, "receiver", receiver)
        return transaction

    async def _reprice(self, transaction: ShipmentTransaction, payload: TransactionUpdate, fields: set) -> None:
        """Recompute amount and PPN after an edit touching pricing or tax inputs."""
        tax_changed = bool(fields & {"is_taxable", "ppn_rate", "amount"})
        # Regular pricing derives the total, unless the caller supplied one
        regular_changed = (
            transaction.pricing_mode == PricingMode.REGULAR.value
            and bool(fields & {"unit_price", "weight", "pricing_mode"})
            and "amount" not in fields
        )
        if not (tax_changed or regular_changed):
            return

        if "is_taxable" in fields and payload.is_taxable is not None:
            transaction.is_taxable = payload.is_taxable
        if "amount" in fields and payload.amount is not None:
            transaction.amount = payload.amount

        rate = 0.0
        if transaction.is_taxable:
            explicit = payload.ppn_rate if "ppn_rate" in fields else None
            if explicit is None and (transaction.ppn_rate or 0) > 0:
                rate = transaction.ppn_rate
            else:
                defaults = await self.tax_settings.get_tax_settings()
                rate = tax.resolve_rate(explicit, transaction.ppn_rate, defaults.default_ppn_rate)

        if regular_changed:
            subtotal = tax.regular_subtotal(transaction.unit_price, transaction.weight)
            breakdown = tax.exclusive(subtotal, transaction.is_taxable, rate)
        else:
            breakdown = tax.inclusive(transaction.amount, transaction.is_taxable, rate)

        transaction.amount = breakdown.total
        transaction.ppn = breakdown.tax
        transaction.ppn_rate = rate

    def _append_status(self, transaction: ShipmentTransaction, status: TransactionStatus, note: Optional[str]) -> None:
        if transaction.status in {s.value for s in TERMINAL_STATUSES} and status.value != transaction.status:
            logger.debug(f"Transaction {transaction.id} leaving terminal status {transaction.status} for {status.value}")
        transaction.status = status.value
        # Reassign so the JSON column is flagged dirty
        transaction.status_history = [*(transaction.status_history or []), history_entry(status, note)]

    @staticmethod
    def _apply_party(transaction: ShipmentTransaction, prefix: str, party: PartySnapshot) -> None:
        setattr(transaction, f"{prefix}_name", party.name)
        setattr(transaction, f"{prefix}_phone", party.phone)
        setattr(transaction, f"{prefix}_address", party.address)
        setattr(transaction, f"{prefix}_city", party.city)
