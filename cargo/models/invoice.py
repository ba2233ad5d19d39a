from enum import Enum

from sqlalchemy import BigInteger, Column, DateTime, JSON, String, func

from cargo.models.base import Base


class InvoiceStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class BillingInvoice(Base):
    __tablename__ = "billing_invoice"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    invoice_number = Column(String, nullable=False, unique=True)  # INV/2026/10/0001

    # Client snapshot at creation
    client_id = Column(String, nullable=True)
    client_name = Column(String, nullable=False)
    client_address = Column(String, nullable=True)

    transaction_ids = Column(JSON, nullable=False, default=list)
    total_amount = Column(BigInteger, nullable=False)

    issue_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)

    status = Column(String, nullable=False, default=InvoiceStatus.UNPAID.value)
    payment_date = Column(DateTime, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_ref = Column(String, nullable=True)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
