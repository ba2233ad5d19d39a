from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import PartialFailureError, RecordNotFoundError, ValidationFailure
from cargo.models.voyage import Voyage
from cargo.schemas.voyage import VoyageCreate, VoyageUpdate
from cargo.services.counter import SequenceCounterService
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.services.expense import ExpenseService
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


def merge_ids(existing: Sequence[str], added: Sequence[str]) -> List[str]:
    """Ordered set union: existing order first, then new ids in the order given."""
    merged: List[str] = []
    seen = set()
    for transaction_id in [*existing, *added]:
        if transaction_id not in seen:
            seen.add(transaction_id)
            merged.append(transaction_id)
    return merged


class VoyageService:
    def __init__(self, db: AsyncSession, counters: SequenceCounterService) -> None:
        self.db = db
        self.counters = counters
        self.expenses = ExpenseService(db)

    async def create_voyage(self, payload: VoyageCreate, user_id: Optional[str] = None) -> Voyage:
        if not payload.route.strip():
            raise ValidationFailure("Route is required", field="route")
        now = utcnow()
        voyage = Voyage(
            id=str(uuid.uuid4()),
            user_id=user_id,
            voyage_number=await self.counters.issue_voyage(),
            departure_date=payload.departure_date,
            arrival_date=payload.arrival_date,
            route=payload.route,
            ship_name=payload.ship_name,
            vehicle_numbers=list(payload.vehicle_numbers),
            status=payload.status.value,
            transaction_ids=[],
            notes=payload.notes,
            created_at=now,
            updated_at=now,
        )
        self.db.add(voyage)
        await self.db.commit()
        await self.db.refresh(voyage)
        logger.info(f"Created voyage {voyage.voyage_number} ({voyage.route})")
        await emit_event(EventType.VOYAGE_CREATED, {"id": voyage.id}, user_id=user_id)
        return voyage

    async def get_voyage(self, voyage_id: str) -> Voyage:
        voyage = await self.db.get(Voyage, voyage_id)
        if voyage is None:
            raise RecordNotFoundError("Voyage", voyage_id)
        return voyage

    async def list_voyages(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Voyage]:
        query = select(Voyage)
        if start is not None:
            query = query.where(Voyage.departure_date >= start)
        if end is not None:
            query = query.where(Voyage.departure_date <= end)
        result = await self.db.execute(query.order_by(Voyage.departure_date.desc()))
        return list(result.scalars().all())

    async def update_voyage(self, voyage_id: str, payload: VoyageUpdate) -> Voyage:
        voyage = await self.get_voyage(voyage_id)
        fields = payload.model_fields_set
        if "route" in fields and (payload.route is None or not payload.route.strip()):
            raise ValidationFailure("Route is required", field="route")

        if "departure_date" in fields and payload.departure_date is not None:
            voyage.departure_date = payload.departure_date
        for name in ("route", "ship_name", "notes", "arrival_date"):
            if name in fields:
                setattr(voyage, name, getattr(payload, name))
        if "vehicle_numbers" in fields and payload.vehicle_numbers is not None:
            voyage.vehicle_numbers = list(payload.vehicle_numbers)
        if "status" in fields and payload.status is not None:
            voyage.status = payload.status.value
        voyage.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(voyage)
        await emit_event(EventType.VOYAGE_UPDATED, {"id": voyage.id})
        return voyage

    async def assign_transactions(self, voyage_id: str, transaction_ids: Sequence[str]) -> Voyage:
        voyage = await self.get_voyage(voyage_id)
        voyage.transaction_ids = merge_ids(voyage.transaction_ids or [], transaction_ids)
        voyage.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(voyage)
        await emit_event(EventType.VOYAGE_UPDATED, {"id": voyage.id})
        return voyage

    async def remove_transactions(self, voyage_id: str, transaction_ids: Sequence[str]) -> Voyage:
        voyage = await self.get_voyage(voyage_id)
        removed = set(transaction_ids)
        voyage.transaction_ids = [i for i in (voyage.transaction_ids or []) if i not in removed]
        voyage.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(voyage)
        await emit_event(EventType.VOYAGE_UPDATED, {"id": voyage.id})
        return voyage

    async def delete_voyage(self, voyage_id: str) -> List[str]:
        """Delete the voyage's expenses one by one, then the voyage. Returns the expense ids removed.

        Each expense delete commits on its own; a failure leaves the earlier
        deletes in place and the remainder for the orphan cleanup sweep.
        """
        voyage = await self.get_voyage(voyage_id)
        expenses = await self.expenses.list_by_voyage(voyage_id)

        deleted: List[str] = []
        for expense in expenses:
            try:
                await self.expenses.delete_expense(expense.id)
            except (RecordNotFoundError, SQLAlchemyError) as e:
                await self.db.rollback()
                logger.error(f"Voyage {voyage_id} cascade stopped at expense {expense.id}: {e}")
                raise PartialFailureError(
                    f"Deleted {len(deleted)} of {len(expenses)} expenses of voyage {voyage_id}",
                    completed_ids=deleted,
                    failed_id=expense.id,
                ) from e
            deleted.append(expense.id)

        await self.db.delete(voyage)
        await self.db.commit()
        logger.info(f"Deleted voyage {voyage_id} and {len(deleted)} linked expenses")
        await emit_event(EventType.VOYAGE_DELETED, {"id": voyage_id})
        return deleted
