from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.db import get_db
from cargo.schemas.settings import TaxSettings
from cargo.services.settings import TaxSettingsService

router = APIRouter()


@router.get("/tax", response_model=TaxSettings)
async def get_tax_settings(db: AsyncSession = Depends(get_db)) -> TaxSettings:
    return await TaxSettingsService(db).get_tax_settings()


@router.put("/tax", response_model=TaxSettings)
async def update_tax_settings(payload: TaxSettings, db: AsyncSession = Depends(get_db)) -> TaxSettings:
    return await TaxSettingsService(db).update_tax_settings(payload)
