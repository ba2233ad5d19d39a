from enum import Enum

from sqlalchemy import BigInteger, Column, DateTime, JSON, String, func

from cargo.models.base import Base


class VoyageStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ExpenseType(str, Enum):
    VOYAGE = "voyage"
    GENERAL = "general"


class ExpenseCategory(str, Enum):
    TIKET = "tiket"
    OPERASIONAL_SURABAYA = "operasional_surabaya"
    OPERASIONAL_MAKASSAR = "operasional_makassar"
    TRANSIT = "transit"
    SEWA_MOBIL = "sewa_mobil"
    GAJI_SOPIR = "gaji_sopir"
    GAJI_KARYAWAN = "gaji_karyawan"
    LISTRIK_AIR_INTERNET = "listrik_air_internet"
    SEWA_KANTOR = "sewa_kantor"
    MAINTENANCE = "maintenance"
    LAINNYA = "lainnya"


EXPENSE_CATEGORY_LABELS = {
    ExpenseCategory.TIKET: "Tiket",
    ExpenseCategory.OPERASIONAL_SURABAYA: "Operasional Surabaya",
    ExpenseCategory.OPERASIONAL_MAKASSAR: "Operasional Makassar",
    ExpenseCategory.TRANSIT: "Transit",
    ExpenseCategory.SEWA_MOBIL: "Sewa Mobil",
    ExpenseCategory.GAJI_SOPIR: "Gaji Sopir",
    ExpenseCategory.GAJI_KARYAWAN: "Gaji Karyawan",
    ExpenseCategory.LISTRIK_AIR_INTERNET: "Listrik/Air/Internet",
    ExpenseCategory.SEWA_KANTOR: "Sewa Kantor",
    ExpenseCategory.MAINTENANCE: "Maintenance Armada",
    ExpenseCategory.LAINNYA: "Lainnya",
}


class Voyage(Base):
    __tablename__ = "voyage"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    voyage_number = Column(String, nullable=False, index=True)
    departure_date = Column(DateTime, nullable=False, index=True)
    arrival_date = Column(DateTime, nullable=True)
    route = Column(String, nullable=False)
    ship_name = Column(String, nullable=True)
    vehicle_numbers = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default=VoyageStatus.PLANNED.value)
    transaction_ids = Column(JSON, nullable=False, default=list)  # ordered, no duplicates
    notes = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class Expense(Base):
    __tablename__ = "expense"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    type = Column(String, nullable=False, default=ExpenseType.VOYAGE.value)
    # Plain string, not a foreign key: deleted voyages may leave orphans behind
    voyage_id = Column(String, nullable=True, index=True)
    category = Column(String, nullable=False)
    amount = Column(BigInteger, nullable=False)
    description = Column(String, nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)
    receipt_url = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
