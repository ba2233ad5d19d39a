from functools import lru_cache
import os
from typing import List, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    debug: bool = False
    project_name: str = "Cahaya Cargo API"
    environment: str = "development"
    log_level: str = "INFO"

    # Raw CORS origins string - read from env
    cors_origins_raw: Optional[str] = Field(
        default=None,
        alias="CORS_ORIGINS"
    )

    @computed_field
    @property
    def backend_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from environment variable (comma-separated string)."""
        raw = self.cors_origins_raw
        if not raw:
            raw = os.environ.get("CORS_ORIGINS") or ""

        if not raw or not raw.strip():
            return []

        origins = []
        for origin in raw.split(","):
            origin = origin.strip()
            if origin:
                origins.append(origin)
        return origins

    database_url: str = "sqlite+aiosqlite:///./cargo.db"

    # Sequence counters
    counter_max_retries: int = 10

    # Tax defaults used when no tax settings record exists yet
    default_ppn_rate: float = 0.11
    default_is_pkp: bool = False

    # Attendance is recorded in local wall-clock time (WIB by default)
    utc_offset_hours: int = 7

    # Payroll
    overtime_rate_per_event: int = 50000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
