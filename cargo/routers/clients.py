from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.api import deps
from cargo.core.db import get_db
from cargo.core.errors import CargoError
from cargo.schemas.client import ClientCreate, ClientResponse, ClientUpdate
from cargo.services.client import ClientService, search_clients

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> ClientService:
    return ClientService(db)


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    q: Optional[str] = Query(None, description="Search name, phone, city, address"),
    service: ClientService = Depends(_service),
) -> List[ClientResponse]:
    clients = await service.list_clients()
    if q:
        clients = search_clients(clients, q)
    return [ClientResponse.model_validate(c) for c in clients]


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreate,
    user_id: Optional[str] = Depends(deps.get_user_id),
    service: ClientService = Depends(_service),
) -> ClientResponse:
    try:
        client = await service.create_client(payload, user_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return ClientResponse.model_validate(client)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, service: ClientService = Depends(_service)) -> ClientResponse:
    try:
        client = await service.get_client(client_id)
    except CargoError as exc:
        raise deps.http_error(exc)
    return ClientResponse.model_validate(client)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    payload: ClientUpdate,
    service: ClientService = Depends(_service),
) -> ClientResponse:
    try:
        client = await service.update_client(client_id, payload)
    except CargoError as exc:
        raise deps.http_error(exc)
    return ClientResponse.model_validate(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: str, service: ClientService = Depends(_service)) -> None:
    try:
        await service.delete_client(client_id)
    except CargoError as exc:
        raise deps.http_error(exc)
