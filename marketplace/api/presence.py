"""
In-memory presence registry for the chat WebSocket.

Maps user ids to their live socket and tracks room membership (one room per
conversation plus a personal room per user). The registry is process-local
and lost on restart; it is mutated only from coroutines on the event loop.

Events are sent as JSON text frames ``{"event": <name>, "data": <payload>}``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from fastapi import WebSocket

from marketplace.database.config.config import settings
from marketplace.database.core.chat_funcs import force_offline
from marketplace.database.helpers.timeutils import isoformat, utcnow

logger = logging.getLogger("uvicorn")


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


@dataclass
class Connection:
    """One connected user."""

    user_id: str
    username: str
    user_type: str
    websocket: WebSocket
    connected_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    viewing_conversation: Optional[str] = None
    rooms: Set[str] = field(default_factory=set)

    def touch(self) -> None:
        self.last_activity = utcnow()


class ConnectionRegistry:
    """
    Live sockets keyed by user id, plus room membership.

    Attributes
    ----------
    connections : Dict[str, Connection]
        At most one connection per user; the newest socket wins.
    rooms : Dict[str, Set[str]]
        Room name to member user ids. Empty rooms are removed.
    """

    def __init__(self):
        self.connections: Dict[str, Connection] = {}
        self.rooms: Dict[str, Set[str]] = {}

    def register(self, connection: Connection) -> None:
        """
        Store a connection and join its personal room.

        Parameters
        ----------
        connection : Connection
            The freshly accepted socket. A previous entry for the same user
            is replaced and removed from all of its rooms.
        """
        previous = self.connections.get(connection.user_id)
        if previous is not None:
            for room in list(previous.rooms):
                self.leave(previous.user_id, room)
        self.connections[connection.user_id] = connection
        self.join(connection.user_id, user_room(connection.user_id))

    def unregister(self, user_id: str, websocket: WebSocket) -> bool:
        """
        Remove a user's entry if it still belongs to ``websocket``.

        Parameters
        ----------
        user_id : str
            Owner of the socket.
        websocket : WebSocket
            The socket being torn down.

        Returns
        -------
        bool
            False when the user has no entry or a newer socket replaced this
            one; the newer entry is left untouched.
        """
        connection = self.connections.get(user_id)
        if connection is None or connection.websocket is not websocket:
            return False
        for room in list(connection.rooms):
            self.leave(user_id, room)
        del self.connections[user_id]
        return True

    def get(self, user_id: str) -> Optional[Connection]:
        return self.connections.get(str(user_id))

    def join(self, user_id: str, room: str) -> None:
        """
        Add a connected user to ``room``.

        Parameters
        ----------
        user_id : str
            Member to add; ignored when the user is not connected.
        room : str
            Conversation id or ``user_<id>``.
        """
        connection = self.connections.get(user_id)
        if connection is None:
            return
        connection.rooms.add(room)
        self.rooms.setdefault(room, set()).add(user_id)

    def leave(self, user_id: str, room: str) -> None:
        """
        Remove a user from ``room``, dropping the room once it is empty.

        Parameters
        ----------
        user_id : str
            Member to remove.
        room : str
            Room name.
        """
        connection = self.connections.get(user_id)
        if connection is not None:
            connection.rooms.discard(room)
        members = self.rooms.get(room)
        if members is not None:
            members.discard(user_id)
            if not members:
                del self.rooms[room]

    def room_members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, ()))

    async def send(self, user_id: str, event: str, data: dict) -> bool:
        """
        Send one event frame to a user's socket.

        Parameters
        ----------
        user_id : str
            Recipient.
        event : str
            Event name, e.g. ``newMessage``.
        data : dict
            JSON-serializable payload.

        Returns
        -------
        bool
            True if the frame was written; False if the user is offline or
            the socket failed.
        """
        connection = self.connections.get(str(user_id))
        if connection is None:
            return False
        try:
            await connection.websocket.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.info(f"Dropping event {event} for {user_id}: {e}")
            return False

    async def emit_to_room(self, room: str, event: str, data: dict, exclude: Optional[str] = None) -> int:
        """
        Send an event to every member of a room.

        Parameters
        ----------
        room : str
            Room name.
        event : str
            Event name.
        data : dict
            Payload.
        exclude : str, optional
            User id to skip, usually the sender.

        Returns
        -------
        int
            Number of sockets the frame was written to.
        """
        sent = 0
        for user_id in self.room_members(room):
            if user_id != exclude and await self.send(user_id, event, data):
                sent += 1
        return sent

    async def emit_to_rooms(self, rooms: Iterable[str], event: str, data: dict, exclude: Optional[str] = None) -> None:
        """
        Send an event once per user across several rooms.

        Parameters
        ----------
        rooms : Iterable[str]
            Room names; members present in several rooms get one frame.
        event : str
            Event name.
        data : dict
            Payload.
        exclude : str, optional
            User id to skip.
        """
        targets: Set[str] = set()
        for room in rooms:
            targets.update(self.room_members(room))
        targets.discard(exclude)
        for user_id in targets:
            await self.send(user_id, event, data)

    def idle_connections(self, timeout: timedelta) -> List[Connection]:
        """
        Parameters
        ----------
        timeout : timedelta
            Maximum time since the last received frame.

        Returns
        -------
        List[Connection]
            Connections whose ``last_activity`` is older than ``timeout``.
        """
        cutoff = utcnow() - timeout
        return [c for c in self.connections.values() if c.last_activity < cutoff]

    def status(self) -> dict:
        """
        Returns
        -------
        dict
            ``{"connected_users": int, "users": [...]}`` with one entry per
            connection: ``user_id, username, user_type, connected_at,
            last_activity``.
        """
        return {
            "connected_users": len(self.connections),
            "users": [
                {
                    "user_id": c.user_id,
                    "username": c.username,
                    "user_type": c.user_type,
                    "connected_at": isoformat(c.connected_at),
                    "last_activity": isoformat(c.last_activity),
                }
                for c in self.connections.values()
            ],
        }


registry = ConnectionRegistry()
"""Process-wide registry shared by the WebSocket endpoint and the chat routes."""


async def prune_idle_connections(timeout: Optional[timedelta] = None) -> List[str]:
    """
    Close idle sockets and take their users offline.

    Each pruned socket is closed with code 1000, the user's chat status is
    set offline and the other members of the user's conversations receive
    ``userStatusChanged`` with ``is_online: False``.

    Parameters
    ----------
    timeout : timedelta, optional
        Idle limit; defaults to ``PRESENCE_IDLE_TIMEOUT_SECONDS``.

    Returns
    -------
    List[str]
        Ids of the pruned users.
    """
    if timeout is None:
        timeout = timedelta(seconds=settings.PRESENCE_IDLE_TIMEOUT_SECONDS)
    pruned = []
    for connection in registry.idle_connections(timeout):
        rooms = [room for room in connection.rooms if room != user_room(connection.user_id)]
        registry.unregister(connection.user_id, connection.websocket)
        try:
            await connection.websocket.close(code=1000)
        except Exception as e:
            logger.info(f"Closing idle socket for {connection.user_id} failed: {e}")
        pruned.append((connection.user_id, rooms))
    if not pruned:
        return []
    force_offline(user_ids=[user_id for user_id, _ in pruned])
    for user_id, rooms in pruned:
        await registry.emit_to_rooms(rooms, "userStatusChanged", {"user_id": user_id, "is_online": False}, exclude=user_id)
    logger.info(f"Pruned {len(pruned)} idle chat connection(s)")
    return [user_id for user_id, _ in pruned]


async def cleanup_loop() -> None:
    while True:
        await asyncio.sleep(settings.PRESENCE_CLEANUP_INTERVAL_SECONDS)
        try:
            await prune_idle_connections()
        except Exception as e:
            logger.error(f"Presence cleanup failed: {e}")
