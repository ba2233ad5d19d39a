from sqlalchemy import Column, DateTime, Integer, String

from cargo.models.base import Base


class SequenceCounter(Base):
    """One row per (family, key); ``current_number`` only moves through counter issuance or reset."""

    __tablename__ = "sequence_counter"

    family = Column(String, primary_key=True)  # stt, invoice, voyage, employee, billing_invoice
    key = Column(String, primary_key=True)  # global, global_pkp, global_202610, ...
    current_number = Column(Integer, nullable=False, default=0)
    prefix = Column(String, nullable=False)
    last_updated = Column(DateTime, nullable=False)
