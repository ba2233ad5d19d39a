from enum import Enum

from sqlalchemy import BigInteger, Column, DateTime, String, func

from cargo.models.base import Base


class FleetStatus(str, Enum):
    AVAILABLE = "Available"
    ON_TRIP = "On Trip"
    MAINTENANCE = "Maintenance"


class ServiceType(str, Enum):
    SERVICE_RUTIN = "Service Rutin"
    GANTI_OLI = "Ganti Oli"
    BAN = "Ban"
    SPAREPART = "Sparepart"
    PERBAIKAN_BERAT = "Perbaikan Berat"
    LAINNYA = "Lainnya"


class Fleet(Base):
    __tablename__ = "fleet"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    name = Column(String, nullable=False)  # e.g. "Truck A"
    plate_number = Column(String, nullable=False)
    type = Column(String, nullable=False)  # e.g. "CDD Box"
    status = Column(String, nullable=False, default=FleetStatus.AVAILABLE.value)
    driver_name = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class MaintenanceLog(Base):
    __tablename__ = "maintenance_log"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)

    fleet_id = Column(String, nullable=False, index=True)
    fleet_name = Column(String, nullable=False)  # denormalized for display
    date = Column(DateTime, nullable=False)
    service_type = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    cost = Column(BigInteger, nullable=False)
    provider = Column(String, nullable=False, default="")  # workshop name
    expense_id = Column(String, nullable=True)  # expense recorded alongside the log

    created_at = Column(DateTime, nullable=False, server_default=func.now())
