"""
Live collection views.

A subscription pairs a loader (re-reads the collection) with a listener
(receives the full snapshot). The listener gets one snapshot when the
subscription opens and another after every change event for its collection.
Snapshots are always complete; there are no deltas. Subscriptions live until
``close()`` is called.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cargo.models.attendance import Attendance
from cargo.models.client import Client
from cargo.models.employee import Employee
from cargo.models.fleet import Fleet, MaintenanceLog
from cargo.models.invoice import BillingInvoice
from cargo.models.payroll import MonthlyPayroll
from cargo.models.transaction import ShipmentTransaction
from cargo.models.voyage import Expense, Voyage
from cargo.schemas.attendance import AttendanceResponse
from cargo.schemas.client import ClientResponse
from cargo.schemas.employee import EmployeeResponse
from cargo.schemas.fleet import FleetResponse, MaintenanceResponse
from cargo.schemas.invoice import BillingInvoiceResponse
from cargo.schemas.payroll import PayrollResponse
from cargo.schemas.transaction import TransactionResponse
from cargo.schemas.voyage import ExpenseResponse, VoyageResponse
from cargo.services.event_dispatcher import Event, EventDispatcher, get_dispatcher

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
Loader = Callable[[], Awaitable[Snapshot]]
Listener = Callable[[Snapshot], Any]

# collection name -> (model, ordering column, response schema)
COLLECTIONS: Dict[str, tuple] = {
    "transactions": (ShipmentTransaction, ShipmentTransaction.shipment_date.desc(), TransactionResponse),
    "voyages": (Voyage, Voyage.departure_date.desc(), VoyageResponse),
    "expenses": (Expense, Expense.date.desc(), ExpenseResponse),
    "fleets": (Fleet, Fleet.name, FleetResponse),
    "maintenance": (MaintenanceLog, MaintenanceLog.date.desc(), MaintenanceResponse),
    "employees": (Employee, Employee.employee_id, EmployeeResponse),
    "invoices": (BillingInvoice, BillingInvoice.issue_date.desc(), BillingInvoiceResponse),
    "clients": (Client, Client.name, ClientResponse),
    "attendance": (Attendance, Attendance.date.desc(), AttendanceResponse),
    "payrolls": (MonthlyPayroll, MonthlyPayroll.period.desc(), PayrollResponse),
}


def collection_loader(session_factory: async_sessionmaker[AsyncSession], collection: str) -> Loader:
    """Loader returning the whole collection as JSON-ready dicts, read in a fresh session."""
    if collection not in COLLECTIONS:
        raise KeyError(collection)
    model, ordering, schema = COLLECTIONS[collection]

    async def load() -> Snapshot:
        async with session_factory() as session:
            result = await session.execute(select(model).order_by(ordering))
            rows = result.scalars().all()
        return [_dump(schema, row) for row in rows]

    return load


def _dump(schema: type[BaseModel], row: Any) -> Dict[str, Any]:
    return schema.model_validate(row).model_dump(mode="json")


class Subscription:
    def __init__(self, hub: "LiveQueryHub", collection: str, loader: Loader, listener: Listener) -> None:
        self.hub = hub
        self.collection = collection
        self.loader = loader
        self.listener = listener
        self.closed = False
        self._lock = asyncio.Lock()

    async def refresh(self) -> None:
        # Serialized so listeners see snapshots in event order
        async with self._lock:
            if self.closed:
                return
            snapshot = await self.loader()
            result = self.listener(snapshot)
            if asyncio.iscoroutine(result):
                await result

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.hub.remove(self)


class LiveQueryHub:
    def __init__(self, dispatcher: Optional[EventDispatcher] = None) -> None:
        self.dispatcher = dispatcher or get_dispatcher()
        self.subscriptions: Dict[str, List[Subscription]] = {}
        self._attached = False

    async def subscribe(self, collection: str, loader: Loader, listener: Listener) -> Subscription:
        subscription = Subscription(self, collection, loader, listener)
        self.subscriptions.setdefault(collection, []).append(subscription)
        if not self._attached:
            self.dispatcher.subscribe_all(self._on_event)
            self._attached = True
        logger.debug(f"Live subscription opened on {collection}")
        try:
            await subscription.refresh()
        except Exception:
            subscription.close()
            raise
        return subscription

    def remove(self, subscription: Subscription) -> None:
        remaining = [s for s in self.subscriptions.get(subscription.collection, []) if s is not subscription]
        if remaining:
            self.subscriptions[subscription.collection] = remaining
        else:
            self.subscriptions.pop(subscription.collection, None)
        if not self.subscriptions and self._attached:
            self.dispatcher.unsubscribe_all(self._on_event)
            self._attached = False
        logger.debug(f"Live subscription closed on {subscription.collection}")

    def count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self.subscriptions.get(collection, []))
        return sum(len(subs) for subs in self.subscriptions.values())

    async def _on_event(self, event: Event) -> None:
        for subscription in list(self.subscriptions.get(event.type.collection, [])):
            try:
                await subscription.refresh()
            except Exception as e:
                logger.error(f"Live refresh of {subscription.collection} failed: {type(e).__name__}: {e}")


live_hub = LiveQueryHub()
