"""
Test configuration and fixtures.

Every test gets its own SQLite database file so that counter tests can run
real concurrent sessions against it.
"""
from datetime import datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cargo.core.config import Settings
from cargo.core.db import build_engine, build_session_factory, get_db, get_session_factory, init_database
from cargo.main import app
from cargo.schemas.transaction import PartySnapshot, SenderSnapshot, TransactionForm
from cargo.services.counter import SequenceCounterService
from cargo.services.transaction import TransactionService


# ======================
# Database
# ======================

@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'cargo.db'}")
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ======================
# Services
# ======================

@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, default_ppn_rate=0.11, default_is_pkp=False, counter_max_retries=100)


@pytest.fixture
def counters(session_factory) -> SequenceCounterService:
    """Generous retry budget: concurrent tests contend on one SQLite file."""
    return SequenceCounterService(session_factory, max_retries=100)


@pytest.fixture
def transactions(db, counters, settings) -> TransactionService:
    return TransactionService(db, counters, settings)


# ======================
# HTTP client
# ======================

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ======================
# Builders
# ======================

SHIPMENT_DATE = datetime(2026, 10, 6, 9, 30)


def make_sender(**overrides) -> SenderSnapshot:
    data = {"id": "client-1", "name": "PT Sinar Jaya", "phone": "0812000111", "city": "Surabaya"}
    data.update(overrides)
    return SenderSnapshot(**data)


def make_receiver(**overrides) -> PartySnapshot:
    data = {"name": "Toko Makmur", "phone": "0813000222", "address": "Jl. Veteran 12", "city": "Makassar"}
    data.update(overrides)
    return PartySnapshot(**data)


def make_form(**overrides) -> TransactionForm:
    data = {
        "shipment_date": SHIPMENT_DATE,
        "destination": "Makassar",
        "collo": 2,
        "weight": 10,
        "unit_price": 50000,
    }
    data.update(overrides)
    return TransactionForm(**data)


def transaction_payload(**overrides) -> dict:
    """JSON body for POST /api/transactions."""
    payload = {
        "shipment_date": SHIPMENT_DATE.isoformat(),
        "destination": "Makassar",
        "collo": 2,
        "weight": 10,
        "unit_price": 50000,
        "sender": {"id": "client-1", "name": "PT Sinar Jaya"},
        "receiver": {"name": "Toko Makmur"},
    }
    payload.update(overrides)
    return payload
