from typing import Optional

from pydantic import BaseModel, Field


class TaxSettings(BaseModel):
    is_pkp: bool = False
    default_ppn_rate: float = Field(0.11, ge=0, le=1)
    company_name: Optional[str] = None
    company_npwp: Optional[str] = None
    company_address: Optional[str] = None
