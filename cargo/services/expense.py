from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.voyage import Expense, ExpenseCategory, ExpenseType, Voyage
from cargo.schemas.voyage import ExpenseCreate, ExpenseTotals, ExpenseUpdate, OrphanCleanupResult
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

_KNOWN_CATEGORIES = {category.value for category in ExpenseCategory}


def category_totals(expenses: List[Expense]) -> ExpenseTotals:
    """Total and per-category sums. Unknown categories are folded into ``lainnya``."""
    by_category: Dict[str, int] = {category.value: 0 for category in ExpenseCategory}
    total = 0
    for expense in expenses:
        category = expense.category if expense.category in _KNOWN_CATEGORIES else ExpenseCategory.LAINNYA.value
        by_category[category] += expense.amount or 0
        total += expense.amount or 0
    return ExpenseTotals(total=total, by_category=by_category)


class ExpenseService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_expense(self, payload: ExpenseCreate, user_id: Optional[str] = None) -> Expense:
        self._validate(payload.type, payload.voyage_id, payload.amount)
        now = utcnow()
        expense = Expense(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=payload.type.value,
            voyage_id=payload.voyage_id if payload.type == ExpenseType.VOYAGE else None,
            category=payload.category.value,
            amount=payload.amount,
            description=payload.description,
            date=payload.date,
            receipt_url=payload.receipt_url,
            created_at=now,
            updated_at=now,
        )
        self.db.add(expense)
        await self.db.commit()
        await self.db.refresh(expense)
        await emit_event(EventType.EXPENSE_CREATED, {"id": expense.id, "voyage_id": expense.voyage_id}, user_id=user_id)
        return expense

    async def get_expense(self, expense_id: str) -> Expense:
        expense = await self.db.get(Expense, expense_id)
        if expense is None:
            raise RecordNotFoundError("Expense", expense_id)
        return expense

    async def list_expenses(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Expense]:
        query = select(Expense)
        if start is not None:
            query = query.where(Expense.date >= start)
        if end is not None:
            query = query.where(Expense.date <= end)
        result = await self.db.execute(query.order_by(Expense.date.desc()))
        return list(result.scalars().all())

    async def list_by_voyage(self, voyage_id: str) -> List[Expense]:
        result = await self.db.execute(
            select(Expense).where(Expense.voyage_id == voyage_id).order_by(Expense.date.desc())
        )
        return list(result.scalars().all())

    async def update_expense(self, expense_id: str, payload: ExpenseUpdate) -> Expense:
        expense = await self.get_expense(expense_id)
        fields = payload.model_fields_set
        expense_type = payload.type if "type" in fields and payload.type else ExpenseType(expense.type)
        voyage_id = payload.voyage_id if "voyage_id" in fields else expense.voyage_id
        amount = payload.amount if "amount" in fields and payload.amount is not None else expense.amount
        self._validate(expense_type, voyage_id, amount)

        expense.type = expense_type.value
        expense.voyage_id = voyage_id if expense_type == ExpenseType.VOYAGE else None
        expense.amount = amount
        if "category" in fields and payload.category is not None:
            expense.category = payload.category.value
        if "description" in fields and payload.description is not None:
            expense.description = payload.description
        if "date" in fields and payload.date is not None:
            expense.date = payload.date
        if "receipt_url" in fields:
            expense.receipt_url = payload.receipt_url
        expense.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(expense)
        await emit_event(EventType.EXPENSE_UPDATED, {"id": expense.id, "voyage_id": expense.voyage_id})
        return expense

    async def delete_expense(self, expense_id: str) -> None:
        expense = await self.get_expense(expense_id)
        voyage_id = expense.voyage_id
        await self.db.delete(expense)
        await self.db.commit()
        await emit_event(EventType.EXPENSE_DELETED, {"id": expense_id, "voyage_id": voyage_id})

    async def voyage_totals(self, voyage_id: str) -> ExpenseTotals:
        return category_totals(await self.list_by_voyage(voyage_id))

    async def cleanup_orphans(self) -> OrphanCleanupResult:
        """Delete voyage expenses whose voyage no longer exists."""
        voyage_ids = set((await self.db.execute(select(Voyage.id))).scalars().all())
        result = await self.db.execute(select(Expense).where(Expense.type == ExpenseType.VOYAGE.value))
        orphans = [e for e in result.scalars().all() if e.voyage_id and e.voyage_id not in voyage_ids]

        orphan_ids = []
        for expense in orphans:
            orphan_ids.append(expense.id)
            await self.db.delete(expense)
        await self.db.commit()

        for expense_id in orphan_ids:
            await emit_event(EventType.EXPENSE_DELETED, {"id": expense_id})
        logger.info(f"Orphan expense cleanup removed {len(orphan_ids)} records")
        return OrphanCleanupResult(deleted_count=len(orphan_ids), orphan_ids=orphan_ids)

    @staticmethod
    def _validate(expense_type: ExpenseType, voyage_id: Optional[str], amount: Optional[int]) -> None:
        if amount is None or amount <= 0:
            raise ValidationFailure("Expense amount must be greater than 0", field="amount")
        if expense_type == ExpenseType.VOYAGE and not voyage_id:
            raise ValidationFailure("Voyage expenses require a voyage id", field="voyage_id")
