from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.fleet import Fleet, FleetStatus, MaintenanceLog
from cargo.models.voyage import ExpenseCategory, ExpenseType
from cargo.schemas.fleet import FleetCreate, FleetUpdate, MaintenanceCreate, MaintenanceUpdate
from cargo.schemas.voyage import ExpenseCreate
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.services.expense import ExpenseService
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class FleetService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_fleet(self, payload: FleetCreate, user_id: Optional[str] = None) -> Fleet:
        if not payload.name.strip() or not payload.plate_number.strip():
            raise ValidationFailure("Fleet name and plate number are required", field="name")
        now = utcnow()
        fleet = Fleet(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=payload.name,
            plate_number=payload.plate_number,
            type=payload.type,
            status=payload.status.value,
            driver_name=payload.driver_name,
            created_at=now,
            updated_at=now,
        )
        self.db.add(fleet)
        await self.db.commit()
        await self.db.refresh(fleet)
        await emit_event(EventType.FLEET_CREATED, {"id": fleet.id}, user_id=user_id)
        return fleet

    async def get_fleet(self, fleet_id: str) -> Fleet:
        fleet = await self.db.get(Fleet, fleet_id)
        if fleet is None:
            raise RecordNotFoundError("Fleet", fleet_id)
        return fleet

    async def list_fleets(self) -> List[Fleet]:
        result = await self.db.execute(select(Fleet).order_by(Fleet.name))
        return list(result.scalars().all())

    async def update_fleet(self, fleet_id: str, payload: FleetUpdate) -> Fleet:
        fleet = await self.get_fleet(fleet_id)
        for name, value in payload.model_dump(exclude_unset=True).items():
            if value is None and name != "driver_name":
                continue
            setattr(fleet, name, value.value if isinstance(value, FleetStatus) else value)
        fleet.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(fleet)
        await emit_event(EventType.FLEET_UPDATED, {"id": fleet.id})
        return fleet

    async def set_status(self, fleet_id: str, status: FleetStatus) -> Fleet:
        return await self.update_fleet(fleet_id, FleetUpdate(status=status))

    async def delete_fleet(self, fleet_id: str) -> None:
        fleet = await self.get_fleet(fleet_id)
        await self.db.delete(fleet)
        await self.db.commit()
        await emit_event(EventType.FLEET_DELETED, {"id": fleet_id})


class MaintenanceService:
    """Maintenance logs. Each new log books a general expense alongside it.

    Deleting a log does not delete that expense: the cost stays on the books.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.fleets = FleetService(db)
        self.expenses = ExpenseService(db)

    async def create_log(self, payload: MaintenanceCreate, user_id: Optional[str] = None) -> MaintenanceLog:
        if payload.cost <= 0:
            raise ValidationFailure("Maintenance cost must be greater than 0", field="cost")
        fleet = await self.fleets.get_fleet(payload.fleet_id)

        expense = await self.expenses.create_expense(
            ExpenseCreate(
                type=ExpenseType.GENERAL,
                category=ExpenseCategory.MAINTENANCE,
                amount=payload.cost,
                description=f"Maintenance {fleet.name}: {payload.service_type.value}",
                date=payload.date,
            ),
            user_id=user_id,
        )

        log = MaintenanceLog(
            id=str(uuid.uuid4()),
            user_id=user_id,
            fleet_id=fleet.id,
            fleet_name=fleet.name,
            date=payload.date,
            service_type=payload.service_type.value,
            description=payload.description,
            cost=payload.cost,
            provider=payload.provider,
            expense_id=expense.id,
            created_at=utcnow(),
        )
        self.db.add(log)
        await self.db.commit()
        await self.db.refresh(log)
        logger.info(f"Logged maintenance for {fleet.name} with expense {expense.id}")
        await emit_event(EventType.MAINTENANCE_CREATED, {"id": log.id, "fleet_id": fleet.id}, user_id=user_id)
        return log

    async def get_log(self, log_id: str) -> MaintenanceLog:
        log = await self.db.get(MaintenanceLog, log_id)
        if log is None:
            raise RecordNotFoundError("Maintenance log", log_id)
        return log

    async def list_logs(self, fleet_id: Optional[str] = None) -> List[MaintenanceLog]:
        query = select(MaintenanceLog)
        if fleet_id is not None:
            query = query.where(MaintenanceLog.fleet_id == fleet_id)
        result = await self.db.execute(query.order_by(MaintenanceLog.date.desc()))
        return list(result.scalars().all())

    async def update_log(self, log_id: str, payload: MaintenanceUpdate) -> MaintenanceLog:
        """Patches the log only. The linked expense keeps its original amount."""
        log = await self.get_log(log_id)
        values = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "cost" in values and values["cost"] <= 0:
            raise ValidationFailure("Maintenance cost must be greater than 0", field="cost")
        for name, value in values.items():
            setattr(log, name, getattr(value, "value", value))
        await self.db.commit()
        await self.db.refresh(log)
        await emit_event(EventType.MAINTENANCE_UPDATED, {"id": log.id})
        return log

    async def delete_log(self, log_id: str) -> None:
        log = await self.get_log(log_id)
        await self.db.delete(log)
        await self.db.commit()
        await emit_event(EventType.MAINTENANCE_DELETED, {"id": log_id})
