"""
Sequence counter service.

Issues the human-readable numbers used across the system (STT receipts,
invoices, voyages, employee ids, monthly billing invoices). Every counter is
a single ``sequence_counter`` row per (family, key) shared by all callers.

Issuance is a compare-and-swap loop: each attempt reads the stored number in
its own short transaction and writes ``max(floor, current) + 1`` back with an
``UPDATE ... WHERE current_number = <observed>``. A lost race surfaces as
``ConcurrencyConflict`` and is retried. When retries run out, or the database
fails outright, a timestamp-derived id is returned instead so the enclosing
business operation can still complete.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cargo.core.errors import ConcurrencyConflict, ValidationFailure
from cargo.models.counter import SequenceCounter
from cargo.schemas.counter import CounterResetResponse, CounterState
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

STT = "stt"
INVOICE = "invoice"
VOYAGE = "voyage"
EMPLOYEE = "employee"
BILLING_INVOICE = "billing_invoice"

GLOBAL_KEY = "global"
PKP_KEY = "global_pkp"

_BILLING_KEY = re.compile(r"^global_(\d{4})(\d{2})$")


@dataclass(frozen=True)
class CounterDefinition:
    family: str
    key: str
    prefix: str
    width: int
    # Numbers at or below the floor belong to a legacy range and are never issued
    floor: int = 0

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}"

    def next_after(self, current: Optional[int]) -> int:
        return max(self.floor, current or 0) + 1

    def fallback(self) -> str:
        return f"{self.prefix}{str(int(time.time() * 1000))[-6:]}"


COUNTERS: Dict[Tuple[str, str], CounterDefinition] = {
    (STT, GLOBAL_KEY): CounterDefinition(STT, GLOBAL_KEY, "STT", 6, 17641),
    (INVOICE, GLOBAL_KEY): CounterDefinition(INVOICE, GLOBAL_KEY, "INV", 6, 12365),
    (INVOICE, PKP_KEY): CounterDefinition(INVOICE, PKP_KEY, "INV-PKP", 5, 5176),
    (VOYAGE, GLOBAL_KEY): CounterDefinition(VOYAGE, GLOBAL_KEY, "VOY", 3),
    (EMPLOYEE, GLOBAL_KEY): CounterDefinition(EMPLOYEE, GLOBAL_KEY, "EMP-", 3),
}


def billing_key(at: datetime) -> str:
    """Counter key for the monthly billing invoice sequence, e.g. ``global_202610``."""
    return f"{GLOBAL_KEY}_{at:%Y%m}"


def resolve_counter(family: str, key: str = GLOBAL_KEY) -> CounterDefinition:
    definition = COUNTERS.get((family, key))
    if definition is not None:
        return definition
    if family == BILLING_INVOICE:
        match = _BILLING_KEY.match(key)
        if match:
            year, month = match.groups()
            return CounterDefinition(BILLING_INVOICE, key, f"INV/{year}/{month}/", 4)
    raise ValidationFailure(f"Unknown counter {family}/{key}", field="family")


class SequenceCounterService:
    """Issues and administers the shared sequence counters.

    Works on its own session factory rather than a request session so that
    every issuance attempt commits independently of the caller's transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], max_retries: int = 10) -> None:
        self.session_factory = session_factory
        self.max_retries = max(1, max_retries)

    async def peek_next(self, family: str, key: str = GLOBAL_KEY) -> str:
        """Preview of the next number. Does not reserve it."""
        definition = resolve_counter(family, key)
        try:
            async with self.session_factory() as session:
                current = await self._read_current(session, definition)
        except SQLAlchemyError as e:
            logger.warning(f"Counter {family}/{key} unreadable, previewing fallback id: {e}")
            return definition.fallback()
        return definition.format(definition.next_after(current))

    async def issue_next(self, family: str, key: str = GLOBAL_KEY) -> str:
        definition = resolve_counter(family, key)
        for attempt in range(1, self.max_retries + 1):
            try:
                number = await self._try_increment(definition)
            except ConcurrencyConflict:
                logger.debug(f"Counter {family}/{key} conflict on attempt {attempt}, retrying")
                continue
            except SQLAlchemyError as e:
                fallback = definition.fallback()
                logger.warning(f"Counter {family}/{key} failed ({type(e).__name__}: {e}); degraded id {fallback}")
                return fallback

            formatted = definition.format(number)
            logger.debug(f"Issued {formatted} from counter {family}/{key}")
            return formatted

        fallback = definition.fallback()
        logger.warning(
            f"Counter {family}/{key} exhausted {self.max_retries} attempts; degraded id {fallback}"
        )
        return fallback

    async def reset_to(self, family: str, key: str, value: int) -> CounterResetResponse:
        """Administrative override of the stored number. Returns the resulting preview."""
        definition = resolve_counter(family, key)
        if value < 0:
            raise ValidationFailure("Counter value must be >= 0", field="value")

        async with self.session_factory() as session:
            row = await session.get(SequenceCounter, (family, key))
            if row is None:
                row = SequenceCounter(family=family, key=key, prefix=definition.prefix)
                session.add(row)
            row.current_number = value
            row.last_updated = utcnow()
            await session.commit()

        preview = definition.format(definition.next_after(value))
        logger.info(f"Counter {family}/{key} reset to {value}; next number will be {preview}")
        return CounterResetResponse(family=family, key=key, current_number=value, next_number=preview)

    async def snapshot(self) -> List[CounterState]:
        """Every stored counter with its next-number preview."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(SequenceCounter).order_by(SequenceCounter.family, SequenceCounter.key)
            )
            rows = list(result.scalars().all())

        states = []
        for row in rows:
            try:
                definition = resolve_counter(row.family, row.key)
            except ValidationFailure:
                logger.warning(f"Skipping unrecognised counter row {row.family}/{row.key}")
                continue
            states.append(
                CounterState(
                    family=row.family,
                    key=row.key,
                    prefix=row.prefix,
                    current_number=row.current_number,
                    last_updated=row.last_updated,
                    next_number=definition.format(definition.next_after(row.current_number)),
                )
            )
        return states

    # Convenience wrappers used by the business services

    async def issue_stt(self) -> str:
        return await self.issue_next(STT)

    async def issue_invoice(self, is_pkp: bool) -> str:
        return await self.issue_next(INVOICE, PKP_KEY if is_pkp else GLOBAL_KEY)

    async def issue_voyage(self) -> str:
        return await self.issue_next(VOYAGE)

    async def issue_employee(self) -> str:
        return await self.issue_next(EMPLOYEE)

    async def issue_billing_invoice(self, at: datetime) -> str:
        return await self.issue_next(BILLING_INVOICE, billing_key(at))

    async def _read_current(self, session: AsyncSession, definition: CounterDefinition) -> Optional[int]:
        result = await session.execute(
            select(SequenceCounter.current_number).where(
                SequenceCounter.family == definition.family,
                SequenceCounter.key == definition.key,
            )
        )
        return result.scalar_one_or_none()

    async def _try_increment(self, definition: CounterDefinition) -> int:
        async with self.session_factory() as session:
            try:
                observed = await self._read_current(session, definition)
                number = definition.next_after(observed)

                if observed is None:
                    session.add(
                        SequenceCounter(
                            family=definition.family,
                            key=definition.key,
                            current_number=number,
                            prefix=definition.prefix,
                            last_updated=utcnow(),
                        )
                    )
                    await session.commit()
                    return number

                result = await session.execute(
                    update(SequenceCounter)
                    .where(
                        SequenceCounter.family == definition.family,
                        SequenceCounter.key == definition.key,
                        SequenceCounter.current_number == observed,
                    )
                    .values(current_number=number, prefix=definition.prefix, last_updated=utcnow())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    await session.rollback()
                    raise ConcurrencyConflict(f"{definition.family}/{definition.key} moved past {observed}")
                await session.commit()
                return number
            except IntegrityError as e:
                # Another caller created the row first
                await session.rollback()
                raise ConcurrencyConflict(f"{definition.family}/{definition.key} created concurrently") from e
            except OperationalError as e:
                # Lock timeouts and serialization failures are contention, not outages
                if not _is_contention(e):
                    raise
                await session.rollback()
                raise ConcurrencyConflict(f"{definition.family}/{definition.key} locked") from e


def _is_contention(error: OperationalError) -> bool:
    message = str(error.orig).lower()
    return "locked" in message or "could not serialize" in message or "deadlock" in message
