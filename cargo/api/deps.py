from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cargo.core.config import get_settings
from cargo.core.db import get_session_factory
from cargo.core.errors import CargoError, PartialFailureError, RecordNotFoundError, ValidationFailure
from cargo.services.counter import SequenceCounterService


async def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Opaque caller id from the ``X-User-Id`` header. Stored on records, never used for filtering."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_counter_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SequenceCounterService:
    return SequenceCounterService(session_factory, max_retries=get_settings().counter_max_retries)


def http_error(exc: CargoError) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValidationFailure):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "field": exc.field},
        )
    if isinstance(exc, PartialFailureError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "completed_ids": exc.completed_ids, "failed_id": exc.failed_id},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
