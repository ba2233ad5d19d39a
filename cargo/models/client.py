from sqlalchemy import Column, DateTime, String, func

from cargo.models.base import Base


class Client(Base):
    """Shipping customer. Transactions copy its details at write time and never join back."""

    __tablename__ = "client"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    name = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=False, default="")
    address = Column(String, nullable=False, default="")
    city = Column(String, nullable=False, default="")
    notes = Column(String, nullable=False, default="")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
