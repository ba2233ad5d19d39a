"""
Event dispatcher for live collection views.

Services emit one event per committed write:

    from cargo.services.event_dispatcher import emit_event, EventType

    await emit_event(EventType.TRANSACTION_CREATED, {"id": transaction.id})

The live query hub subscribes to these events and re-snapshots the affected
collection for every open subscription.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Change events, named ``<collection>.<change>``."""
    TRANSACTION_CREATED = "transactions.created"
    TRANSACTION_UPDATED = "transactions.updated"
    TRANSACTION_DELETED = "transactions.deleted"

    VOYAGE_CREATED = "voyages.created"
    VOYAGE_UPDATED = "voyages.updated"
    VOYAGE_DELETED = "voyages.deleted"

    EXPENSE_CREATED = "expenses.created"
    EXPENSE_UPDATED = "expenses.updated"
    EXPENSE_DELETED = "expenses.deleted"

    FLEET_CREATED = "fleets.created"
    FLEET_UPDATED = "fleets.updated"
    FLEET_DELETED = "fleets.deleted"

    MAINTENANCE_CREATED = "maintenance.created"
    MAINTENANCE_UPDATED = "maintenance.updated"
    MAINTENANCE_DELETED = "maintenance.deleted"

    EMPLOYEE_CREATED = "employees.created"
    EMPLOYEE_UPDATED = "employees.updated"
    EMPLOYEE_DELETED = "employees.deleted"

    CLIENT_CREATED = "clients.created"
    CLIENT_UPDATED = "clients.updated"
    CLIENT_DELETED = "clients.deleted"

    ATTENDANCE_UPDATED = "attendance.updated"

    PAYROLL_CREATED = "payrolls.created"
    PAYROLL_UPDATED = "payrolls.updated"
    PAYROLL_DELETED = "payrolls.deleted"

    INVOICE_CREATED = "invoices.created"
    INVOICE_UPDATED = "invoices.updated"
    INVOICE_DELETED = "invoices.deleted"

    COUNTER_RESET = "counters.updated"
    SETTINGS_UPDATED = "settings.updated"

    @property
    def collection(self) -> str:
        return self.value.split(".", 1)[0]


@dataclass
class Event:
    """Represents an event to be dispatched."""
    type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())
    user_id: Optional[str] = None


EventHandler = Callable[[Event], Any]


class EventDispatcher:
    """
    Central event dispatcher for live views.

    Simple in-process pub/sub. Handlers run after the emitting service has
    committed, so they always observe the new state.
    """

    _instance: Optional["EventDispatcher"] = None
    _handlers: Dict[EventType, List[EventHandler]]
    _global_handlers: List[EventHandler]

    def __new__(cls) -> "EventDispatcher":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._handlers = {}
            cls._instance._global_handlers = []
        return cls._instance

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to a specific event type."""
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Handler subscribed to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Global handler subscribed")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type in self._handlers:
            self._handlers[event_type] = [h for h in self._handlers[event_type] if h != handler]

    def unsubscribe_all(self, handler: EventHandler) -> None:
        """Remove a handler registered with ``subscribe_all``."""
        self._global_handlers = [h for h in self._global_handlers if h != handler]

    async def emit(self, event: Event) -> None:
        """Emit an event to all subscribers."""
        handlers = self._handlers.get(event.type, []) + self._global_handlers

        if not handlers:
            logger.debug(f"No handlers for event {event.type.value}")
            return

        tasks = []
        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    tasks.append(result)
            except Exception as e:
                logger.error(f"Error in event handler for {event.type.value}: {e}")

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Error in event handler for {event.type.value}: {result}")

        logger.debug(f"Event {event.type.value} dispatched to {len(handlers)} handlers")


_dispatcher = EventDispatcher()


def get_dispatcher() -> EventDispatcher:
    """Get the global event dispatcher."""
    return _dispatcher


async def emit_event(event_type: EventType, data: Dict[str, Any], user_id: Optional[str] = None) -> None:
    """Emit an event to all subscribers. Services call this after each commit."""
    await _dispatcher.emit(Event(type=event_type, data=data, user_id=user_id))
