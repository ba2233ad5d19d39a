"""WebSocket endpoint streaming live collection snapshots."""
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cargo.core.db import get_session_factory
from cargo.services.subscriptions import COLLECTIONS, collection_loader
from cargo.websocket.hub import channel_hub

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/live/{collection}")
async def live_collection(
    websocket: WebSocket,
    collection: str,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """
    Streams ``{"type": "snapshot", "collection": ..., "data": [...]}`` messages:
    one on connect, then one after every change to the collection.
    Clients may send ``ping`` and receive ``pong``.
    """
    if collection not in COLLECTIONS:
        await websocket.close(code=1008, reason=f"Unknown collection {collection}")
        return

    try:
        await channel_hub.connect(collection, websocket, collection_loader(session_factory, collection))
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug(f"Live client left {collection}")
    except SQLAlchemyError as e:
        logger.error(f"Live view of {collection} failed: {type(e).__name__}: {e}")
        await websocket.close(code=1011, reason="Live view unavailable")
    finally:
        channel_hub.disconnect(collection, websocket)
