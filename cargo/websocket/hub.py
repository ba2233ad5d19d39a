import asyncio
import json
import logging
from typing import Any, Dict, List, Set

from fastapi import WebSocket

from cargo.services.subscriptions import LiveQueryHub, Loader, Subscription, live_hub

logger = logging.getLogger(__name__)


def snapshot_message(collection: str, snapshot: List[Dict[str, Any]]) -> dict:
    return {"type": "snapshot", "collection": collection, "data": snapshot}


class ChannelHub:
    """WebSocket fan-out of live collection snapshots, one channel per collection.

    The first client on a channel opens a live subscription; the last one to
    leave closes it. Opening is serialized per channel so concurrent first
    clients share a single subscription.
    """

    def __init__(self, live: LiveQueryHub) -> None:
        self.live = live
        self.connections: Dict[str, Set[WebSocket]] = {}
        self.subscriptions: Dict[str, Subscription] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def connect(self, channel_id: str, websocket: WebSocket, loader: Loader) -> None:
        await websocket.accept()
        async with self._locks.setdefault(channel_id, asyncio.Lock()):
            self.connections.setdefault(channel_id, set()).add(websocket)

            if channel_id in self.subscriptions:
                await websocket.send_text(json.dumps(snapshot_message(channel_id, await loader())))
                return

            async def push(snapshot: List[Dict[str, Any]]) -> None:
                await self.broadcast(channel_id, snapshot_message(channel_id, snapshot))

            self.subscriptions[channel_id] = await self.live.subscribe(channel_id, loader, push)

    def disconnect(self, channel_id: str, websocket: WebSocket) -> None:
        clients = self.connections.get(channel_id)
        if not clients:
            return
        clients.discard(websocket)
        if not clients:
            self.connections.pop(channel_id, None)
            subscription = self.subscriptions.pop(channel_id, None)
            if subscription is not None:
                subscription.close()

    async def broadcast(self, channel_id: str, message: dict) -> None:
        payload = json.dumps(message)
        disconnected = []
        for connection in list(self.connections.get(channel_id, set())):
            try:
                await connection.send_text(payload)
            except Exception as e:
                logger.warning(f"Dropping live client on {channel_id}: {type(e).__name__}: {e}")
                disconnected.append(connection)

        for connection in disconnected:
            self.disconnect(channel_id, connection)

    def count(self, channel_id: str) -> int:
        return len(self.connections.get(channel_id, set()))


channel_hub = ChannelHub(live_hub)
