from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import RecordNotFoundError, ValidationFailure
from cargo.models.client import Client
from cargo.schemas.client import ClientCreate, ClientUpdate
from cargo.schemas.transaction import SenderSnapshot
from cargo.services.event_dispatcher import EventType, emit_event
from cargo.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

CLIENT_SEARCH_FIELDS = ("name", "phone", "city", "address")


def search_clients(clients: Iterable[Client], term: str) -> List[Client]:
    """Case-insensitive substring match on name, phone, city and address."""
    needle = term.strip().lower()
    if not needle:
        return list(clients)
    return [
        client
        for client in clients
        if any(needle in (getattr(client, name) or "").lower() for name in CLIENT_SEARCH_FIELDS)
    ]


class ClientService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_client(self, payload: ClientCreate, user_id: Optional[str] = None) -> Client:
        if not payload.name.strip():
            raise ValidationFailure("Client name is required", field="name")
        now = utcnow()
        client = Client(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=payload.name.strip(),
            phone=payload.phone,
            address=payload.address,
            city=payload.city,
            notes=payload.notes,
            created_at=now,
            updated_at=now,
        )
        self.db.add(client)
        await self.db.commit()
        await self.db.refresh(client)
        logger.info(f"Created client {client.id} ({client.name})")
        await emit_event(EventType.CLIENT_CREATED, {"id": client.id}, user_id=user_id)
        return client

    async def get_client(self, client_id: str) -> Client:
        client = await self.db.get(Client, client_id)
        if client is None:
            raise RecordNotFoundError("Client", client_id)
        return client

    async def list_clients(self) -> List[Client]:
        result = await self.db.execute(select(Client).order_by(func.lower(Client.name)))
        return list(result.scalars().all())

    async def update_client(self, client_id: str, payload: ClientUpdate) -> Client:
        """Edits the client only. Transactions keep the details they were created with."""
        client = await self.get_client(client_id)
        values = payload.model_dump(exclude_unset=True)
        if "name" in values and not (values["name"] or "").strip():
            raise ValidationFailure("Client name is required", field="name")
        for name, value in values.items():
            setattr(client, name, value if value is not None else "")
        client.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(client)
        await emit_event(EventType.CLIENT_UPDATED, {"id": client.id})
        return client

    async def delete_client(self, client_id: str) -> None:
        client = await self.get_client(client_id)
        await self.db.delete(client)
        await self.db.commit()
        await emit_event(EventType.CLIENT_DELETED, {"id": client_id})

    async def sender_snapshot(self, client_id: str) -> SenderSnapshot:
        client = await self.get_client(client_id)
        return SenderSnapshot(
            id=client.id,
            name=client.name,
            phone=client.phone or None,
            address=client.address or None,
            city=client.city or None,
        )
