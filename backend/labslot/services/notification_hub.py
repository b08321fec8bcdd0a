from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class JsonSocket(Protocol):
    async def send_json(self, data: Any) -> None: ...


class NotificationHub:
    """Registry of live sockets per user id.

    One instance is created per application lifespan and handed to routes via
    ``app.state``; nothing here is module-global.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[JsonSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def register(self, user_id: str, websocket: JsonSocket) -> None:
        async with self._lock:
            self._connections[user_id].add(websocket)

    async def unregister(self, user_id: str, websocket: JsonSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(user_id, None)

    async def connection_count(self, user_id: str) -> int:
        async with self._lock:
            return len(self._connections.get(user_id, ()))

    async def publish(self, user_id: str, payload: dict) -> int:
        async with self._lock:
            sockets = list(self._connections.get(user_id, set()))

        if not sockets:
            return 0

        delivered = 0
        stale: list[JsonSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_json(payload)
                delivered += 1
            except Exception:  # pragma: no cover - network/runtime dependent
                stale.append(websocket)

        if stale:
            async with self._lock:
                active = self._connections.get(user_id, set())
                for socket in stale:
                    active.discard(socket)
                if not active:
                    self._connections.pop(user_id, None)
            logger.debug("Removed %d stale websocket(s) for user %s", len(stale), user_id)
        return delivered

    async def publish_many(self, user_ids: set[str] | list[str], payload: dict) -> int:
        total = 0
        for user_id in dict.fromkeys(user_ids):
            total += await self.publish(user_id, payload)
        return total
