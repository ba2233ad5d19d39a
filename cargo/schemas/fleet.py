from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from cargo.models.fleet import FleetStatus, ServiceType


class FleetCreate(BaseModel):
    name: str
    plate_number: str
    type: str
    status: FleetStatus = FleetStatus.AVAILABLE
    driver_name: Optional[str] = None


class FleetUpdate(BaseModel):
    name: Optional[str] = None
    plate_number: Optional[str] = None
    type: Optional[str] = None
    status: Optional[FleetStatus] = None
    driver_name: Optional[str] = None


class FleetStatusUpdate(BaseModel):
    status: FleetStatus


class FleetResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    name: str
    plate_number: str
    type: str
    status: FleetStatus
    driver_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MaintenanceCreate(BaseModel):
    fleet_id: str
    date: datetime
    service_type: ServiceType
    description: str = ""
    cost: int
    provider: str = ""


class MaintenanceUpdate(BaseModel):
    date: Optional[datetime] = None
    service_type: Optional[ServiceType] = None
    description: Optional[str] = None
    cost: Optional[int] = None
    provider: Optional[str] = None


class MaintenanceResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    user_id: Optional[str] = None
    fleet_id: str
    fleet_name: str
    date: datetime
    service_type: ServiceType
    description: str
    cost: int
    provider: str
    expense_id: Optional[str] = None
    created_at: datetime
