from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CounterPreview(BaseModel):
    family: str
    key: str
    next_number: str


class CounterState(BaseModel):
    family: str
    key: str
    prefix: str
    current_number: int
    last_updated: Optional[datetime] = None
    next_number: str


class CounterSnapshotResponse(BaseModel):
    counters: List[CounterState]


class CounterReset(BaseModel):
    value: int = Field(..., ge=0)


class CounterResetResponse(BaseModel):
    family: str
    key: str
    current_number: int
    next_number: str
