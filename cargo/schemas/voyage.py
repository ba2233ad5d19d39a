from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cargo.models.voyage import ExpenseCategory, ExpenseType, VoyageStatus


class VoyageCreate(BaseModel):
    departure_date: datetime
    arrival_date: Optional[datetime] = None
    route: str
    ship_name: Optional[str] = None
    vehicle_numbers: List[str] = Field(default_factory=list)
    status: VoyageStatus = VoyageStatus.PLANNED
    notes: Optional[str] = None


class VoyageUpdate(BaseModel):
    departure_date: Optional[datetime] = None
    arrival_date: Optional[datetime] = None
    route: Optional[str] = None
    ship_name: Optional[str] = None
    vehicle_numbers: Optional[List[str]] = None
    status: Optional[VoyageStatus] = None
    notes: Optional[str] = None


class TransactionAssignment(BaseModel):
    transaction_ids: List[str]


class VoyageResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    voyage_number: str
    departure_date: datetime
    arrival_date: Optional[datetime] = None
    route: str
    ship_name: Optional[str] = None
    vehicle_numbers: List[str]
    status: VoyageStatus
    transaction_ids: List[str]
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ExpenseCreate(BaseModel):
    type: ExpenseType = ExpenseType.VOYAGE
    voyage_id: Optional[str] = None
    category: ExpenseCategory
    amount: int
    description: str = ""
    date: datetime
    receipt_url: Optional[str] = None


class ExpenseUpdate(BaseModel):
    type: Optional[ExpenseType] = None
    voyage_id: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    amount: Optional[int] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    receipt_url: Optional[str] = None


class ExpenseResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    type: ExpenseType
    voyage_id: Optional[str] = None
    category: str
    amount: int
    description: str
    date: datetime
    receipt_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ExpenseTotals(BaseModel):
    total: int
    by_category: Dict[str, int]


class OrphanCleanupResult(BaseModel):
    deleted_count: int
    orphan_ids: List[str]
