import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cargo.core.config import get_settings
from cargo.models.base import Base

logger = logging.getLogger(__name__)

settings = get_settings()


def get_async_database_url(url: str) -> str:
    """Convert database URL to async-compatible format using psycopg driver."""
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    elif url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("sqlite://"):
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    database_url = get_async_database_url(url)

    connect_args: dict = {}
    if "postgresql" in database_url:
        connect_args = {"connect_timeout": 10}
        return create_async_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_timeout=10,
            max_overflow=10,
            connect_args=connect_args,
        )

    # SQLite serializes writers; wait on the file lock instead of failing fast
    connect_args = {"timeout": 30}
    return create_async_engine(database_url, echo=echo, connect_args=connect_args)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, expire_on_commit=False)


engine: AsyncEngine = build_engine(settings.database_url, echo=settings.debug)
AsyncSessionFactory = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionFactory() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that must run in its own transaction (counter issuance)."""
    return AsyncSessionFactory


async def init_database(bind: AsyncEngine | None = None) -> None:
    """Create all tables. In production use Alembic migrations instead."""
    import cargo.models  # noqa: F401 register tables on the metadata

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def test_database_connection() -> bool:
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection test failed: {type(e).__name__}: {e}")
        return False
