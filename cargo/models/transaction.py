from enum import Enum

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Float, Integer, JSON, String, func

from cargo.models.base import Base


class TransactionStatus(str, Enum):
    PENDING = "pending"
    DIPROSES = "diproses"
    DIKIRIM = "dikirim"
    SELESAI = "selesai"
    DIBATALKAN = "dibatalkan"


ACTIVE_STATUSES = (TransactionStatus.PENDING, TransactionStatus.DIPROSES, TransactionStatus.DIKIRIM)
TERMINAL_STATUSES = (TransactionStatus.SELESAI, TransactionStatus.DIBATALKAN)


class PricingMode(str, Enum):
    REGULAR = "regular"  # unit price x weight
    BORONGAN = "borongan"  # flat manual amount


class WeightUnit(str, Enum):
    KG = "KG"
    M3 = "M3"


class PaymentMethod(str, Enum):
    TUNAI = "Tunai"
    KREDIT = "Kredit"
    DP = "DP"


class Settlement(str, Enum):
    CASH = "Cash"
    TF = "TF"
    PENDING = "Pending"


class ShipmentTransaction(Base):
    __tablename__ = "shipment_transaction"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    shipment_date = Column(DateTime, nullable=False, index=True)
    destination = Column(String, nullable=False, default="")
    stt_number = Column(String, nullable=False, index=True)

    # Party snapshots, copied at write time
    sender_id = Column(String, nullable=False, index=True)
    sender_name = Column(String, nullable=False)
    sender_phone = Column(String, nullable=True)
    sender_address = Column(String, nullable=True)
    sender_city = Column(String, nullable=True)
    receiver_name = Column(String, nullable=False)
    receiver_phone = Column(String, nullable=True)
    receiver_address = Column(String, nullable=True)
    receiver_city = Column(String, nullable=True)

    collo = Column(Integer, nullable=False)
    weight = Column(Float, nullable=False, default=0)
    weight_unit = Column(String, nullable=False, default=WeightUnit.KG.value)

    pricing_mode = Column(String, nullable=False, default=PricingMode.REGULAR.value)
    unit_price = Column(BigInteger, nullable=False, default=0)  # 0 for borongan
    amount = Column(BigInteger, nullable=False, default=0)  # total in rupiah, tax included

    invoice_number = Column(String, nullable=False, index=True)
    payment_method = Column(String, nullable=False, default=PaymentMethod.TUNAI.value)
    settlement = Column(String, nullable=False, default=Settlement.PENDING.value)

    is_taxable = Column(Boolean, nullable=False, default=False)
    ppn_rate = Column(Float, nullable=False, default=0)  # frozen at creation
    ppn = Column(BigInteger, nullable=False, default=0)

    notes = Column(String, nullable=True)
    contents = Column(String, nullable=True)
    delivery_note = Column(JSON, nullable=True)  # surat jalan payload

    status = Column(String, nullable=False, default=TransactionStatus.PENDING.value)
    status_history = Column(JSON, nullable=False, default=list)  # [{status, timestamp, note}]

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
