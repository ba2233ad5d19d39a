from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ClientCreate(BaseModel):
    name: str
    phone: str = ""
    address: str = ""
    city: str = ""
    notes: str = ""


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None


class ClientResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    name: str
    phone: str
    address: str
    city: str
    notes: str
    created_at: datetime
    updated_at: datetime
