import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.config import Settings, get_settings
from cargo.models.settings import AppSetting
from cargo.schemas.settings import TaxSettings
from cargo.services.event_dispatcher import EventType, emit_event

logger = logging.getLogger(__name__)

TAX_SETTINGS_KEY = "tax"


class TaxSettingsService:
    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    def defaults(self) -> TaxSettings:
        return TaxSettings(
            is_pkp=self.settings.default_is_pkp,
            default_ppn_rate=self.settings.default_ppn_rate,
        )

    async def get_tax_settings(self) -> TaxSettings:
        row = await self.db.get(AppSetting, TAX_SETTINGS_KEY)
        if row is None:
            return self.defaults()
        return TaxSettings.model_validate({**self.defaults().model_dump(), **(row.value or {})})

    async def update_tax_settings(self, payload: TaxSettings) -> TaxSettings:
        row = await self.db.get(AppSetting, TAX_SETTINGS_KEY)
        if row is None:
            row = AppSetting(key=TAX_SETTINGS_KEY)
            self.db.add(row)
        row.value = payload.model_dump()
        await self.db.commit()
        logger.info(f"Tax settings updated: pkp={payload.is_pkp} rate={payload.default_ppn_rate}")
        await emit_event(EventType.SETTINGS_UPDATED, {"key": TAX_SETTINGS_KEY})
        return payload
