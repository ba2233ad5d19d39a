from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from cargo.models.invoice import InvoiceStatus


class BillingInvoiceCreate(BaseModel):
    client_id: Optional[str] = None
    client_name: str
    client_address: Optional[str] = None
    transaction_ids: List[str] = Field(..., min_length=1)
    # Sum of the linked transactions when omitted
    total_amount: Optional[int] = None
    issue_date: datetime
    due_date: datetime
    notes: Optional[str] = None


class PaymentDetails(BaseModel):
    date: datetime
    method: str  # "Transfer" settles transactions as TF, anything else as Cash
    ref: Optional[str] = None


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus
    payment: Optional[PaymentDetails] = None


class BillingInvoiceResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    invoice_number: str
    client_id: Optional[str] = None
    client_name: str
    client_address: Optional[str] = None
    transaction_ids: List[str]
    total_amount: int
    issue_date: datetime
    due_date: datetime
    status: InvoiceStatus
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_ref: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
