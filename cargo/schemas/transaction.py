from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from cargo.models.transaction import (
    PaymentMethod,
    PricingMode,
    Settlement,
    TransactionStatus,
    WeightUnit,
)


class PartySnapshot(BaseModel):
    """Party details copied into the transaction at write time."""

    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class SenderSnapshot(PartySnapshot):
    id: str


class TransactionForm(BaseModel):
    shipment_date: datetime
    destination: str = ""
    collo: int
    weight: float = 0
    weight_unit: WeightUnit = WeightUnit.KG
    pricing_mode: PricingMode = PricingMode.REGULAR
    unit_price: int = 0
    # Manual total for borongan pricing, tax included
    amount: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.TUNAI
    settlement: Settlement = Settlement.PENDING
    is_taxable: bool = False
    ppn_rate: Optional[float] = None
    notes: Optional[str] = None
    contents: Optional[str] = None
    status: TransactionStatus = TransactionStatus.PENDING
    stt_number: Optional[str] = None
    invoice_number: Optional[str] = None


class TransactionCreate(TransactionForm):
    # Either a full sender snapshot or the id of a stored client to copy it from
    sender: Optional[SenderSnapshot] = None
    sender_id: Optional[str] = None
    receiver: PartySnapshot


class TransactionBatchCreate(TransactionForm):
    sender: Optional[SenderSnapshot] = None
    sender_id: Optional[str] = None
    receivers: List[PartySnapshot] = Field(..., min_length=1)


class TransactionUpdate(BaseModel):
    """Sparse edit. Only fields that are explicitly set are applied."""

    shipment_date: Optional[datetime] = None
    destination: Optional[str] = None
    stt_number: Optional[str] = None
    sender: Optional[SenderSnapshot] = None
    receiver: Optional[PartySnapshot] = None
    collo: Optional[int] = None
    weight: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    pricing_mode: Optional[PricingMode] = None
    unit_price: Optional[int] = None
    amount: Optional[int] = None
    invoice_number: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    settlement: Optional[Settlement] = None
    is_taxable: Optional[bool] = None
    ppn_rate: Optional[float] = None
    notes: Optional[str] = None
    contents: Optional[str] = None
    status: Optional[TransactionStatus] = None


class StatusTransition(BaseModel):
    status: TransactionStatus
    note: Optional[str] = None


class StatusHistoryEntry(BaseModel):
    status: TransactionStatus
    timestamp: datetime
    note: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted_ids: List[str]


class TransactionResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    shipment_date: datetime
    destination: str
    stt_number: str
    sender_id: str
    sender_name: str
    sender_phone: Optional[str] = None
    sender_address: Optional[str] = None
    sender_city: Optional[str] = None
    receiver_name: str
    receiver_phone: Optional[str] = None
    receiver_address: Optional[str] = None
    receiver_city: Optional[str] = None
    collo: int
    weight: float
    weight_unit: WeightUnit
    pricing_mode: PricingMode
    unit_price: int
    amount: int
    invoice_number: str
    payment_method: PaymentMethod
    settlement: Settlement
    is_taxable: bool
    ppn_rate: float
    ppn: int
    notes: Optional[str] = None
    contents: Optional[str] = None
    delivery_note: Optional[Dict[str, Any]] = None
    status: TransactionStatus
    status_history: List[StatusHistoryEntry]
    created_at: datetime
    updated_at: datetime
