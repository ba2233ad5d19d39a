from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.fleet import (
    FleetCreate,
    FleetResponse,
    FleetStatusUpdate,
    FleetUpdate,
    MaintenanceCreate,
    MaintenanceResponse,
    MaintenanceUpdate,
)
from cargo.services.fleet import FleetService, MaintenanceService

router = APIRouter()


async def _fleet_services(db: AsyncSession = Depends(get_db)) -> tuple[FleetService, MaintenanceService]:
    return FleetService(db), MaintenanceService(db)


@router.get("", response_model=List[FleetResponse])
async def list_fleets(
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> List[FleetResponse]:
    fleet_service, _ = services
    return [FleetResponse.model_validate(f) for f in await fleet_service.list_fleets()]


@router.post("", response_model=FleetResponse, status_code=status.HTTP_201_CREATED)
async def create_fleet(
    payload: FleetCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> FleetResponse:
    fleet_service, _ = services
    try:
        fleet = await fleet_service.create_fleet(payload, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return FleetResponse.model_validate(fleet)


@router.get("/maintenance", response_model=List[MaintenanceResponse])
async def list_maintenance_logs(
    fleet_id: Optional[str] = Query(None),
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> List[MaintenanceResponse]:
    _, maintenance_service = services
    return [MaintenanceResponse.model_validate(m) for m in await maintenance_service.list_logs(fleet_id)]


@router.post("/maintenance", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def create_maintenance_log(
    payload: MaintenanceCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> MaintenanceResponse:
    _, maintenance_service = services
    try:
        log = await maintenance_service.create_log(payload, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return MaintenanceResponse.model_validate(log)


@router.patch("/maintenance/{log_id}", response_model=MaintenanceResponse)
async def update_maintenance_log(
    log_id: str,
    payload: MaintenanceUpdate,
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> MaintenanceResponse:
    _, maintenance_service = services
    try:
        log = await maintenance_service.update_log(log_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return MaintenanceResponse.model_validate(log)


@router.delete("/maintenance/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_maintenance_log(
    log_id: str,
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> None:
    _, maintenance_service = services
    try:
        await maintenance_service.delete_log(log_id)
    except CargoError as exc:
        raise deps.http_error(exc)


@router.get("/{fleet_id}", response_model=FleetResponse)
async def get_fleet(
    fleet_id: str,
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> FleetResponse:
    fleet_service, _ = services
    try:
        fleet = await fleet_service.get_fleet(fleet_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return FleetResponse.model_validate(fleet)


@router.patch("/{fleet_id}", response_model=FleetResponse)
async def update_fleet(
    fleet_id: str,
    payload: FleetUpdate,
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> FleetResponse:
    fleet_service, _ = services
    try:
        fleet = await fleet_service.update_fleet(fleet_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return FleetResponse.model_validate(fleet)


@router.put("/{fleet_id}/status", response_model=FleetResponse)
async def set_fleet_status(
    fleet_id: str,
    payload: FleetStatusUpdate,
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> FleetResponse:
    fleet_service, _ = services
    try:
        fleet = await fleet_service.set_status(fleet_id, payload.status)
    except CargoError as exc:
        raise deps.http_error(exc)
    return FleetResponse.model_validate(fleet)


@router.delete("/{fleet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fleet(
    fleet_id: str,
    services: tuple[FleetService, MaintenanceService] = Depends(_fleet_services),
) -> None:
    fleet_service, _ = services
    try:
        await fleet_service.delete_fleet(fleet_id)
    except CargoError as exc:
        raise deps.http_error(exc)
