from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)


class RealtimeConnection(Protocol):
    async def send_json(self, data: Any) -> None: ...


class ConnectionRegistry:
    """Maps a room (user id) to the live connections currently joined to it.

    A user may hold several connections at once (tabs, devices). Emitting to
    a room with no connections does nothing; nothing is queued for later.
    join/leave never await, so they are atomic on the event loop.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, List[RealtimeConnection]] = {}

    def join(self, room: str, connection: RealtimeConnection) -> None:
        members = self._rooms.setdefault(room, [])
        if connection not in members:
            members.append(connection)

    def leave(self, room: str, connection: RealtimeConnection) -> None:
        members = self._rooms.get(room)
        if not members:
            return
        if connection in members:
            members.remove(connection)
        if not members:
            del self._rooms[room]

    def connection_count(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    def clear(self) -> None:
        self._rooms.clear()

    async def emit(self, room: str, event: str, data: Dict[str, Any]) -> int:
        """Send one event to every connection in a room.

        Returns the number of connections that received it. A connection whose
        send fails is dropped from the room.
        """

        members = list(self._rooms.get(room, ()))
        if not members:
            return 0

        frame = {"event": event, "data": data}
        delivered = 0
        for connection in members:
            try:
                await connection.send_json(frame)
                delivered += 1
            except Exception:
                logger.warning("Dropping realtime connection in room %s after failed send", room, exc_info=True)
                self.leave(room, connection)
        return delivered


connection_registry = ConnectionRegistry()
