from fastapi import APIRouter

from cargo.core.db import test_database_connection

router = APIRouter()


@router.get("/healthz", summary="Health check")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz/db", summary="Database connectivity check")
async def database_health_check() -> dict[str, str]:
    connected = await test_database_connection()
    return {"status": "ok" if connected else "unavailable"}
