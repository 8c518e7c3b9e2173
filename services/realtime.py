import logging
from collections import defaultdict
from typing import Any, DefaultDict, Dict, Optional, Set

from starlette.requests import HTTPConnection
from starlette.websockets import WebSocket, WebSocketDisconnect

from core.errors import Unavailable

logger = logging.getLogger(__name__)

# Server → client event names
EVENT_MATCH = "match_notification"
EVENT_NEW_REQUEST = "new_request_notification"
EVENT_REQUEST_ACCEPTED = "request_accepted_notification"
EVENT_NEW_NOTIFICATION = "new_notification"
EVENT_MESSAGE = "message"
EVENT_TYPING = "typing"
EVENT_JOINED = "joined"
EVENT_ERROR = "error"


def personal_channel(user_id: int) -> str:
    return f"user:{user_id}"


def conversation_channel(match_id: int) -> str:
    return f"match:{match_id}"


class RealtimeTransport:
    """
    Channel registry for websocket connections.

    Every registered connection sits in its personal channel; conversation
    channels are joined explicitly. Delivery is fire-and-forget: a socket
    that fails to receive is dropped from every channel.
    """

    def __init__(self) -> None:
        self._users: Dict[WebSocket, int] = {}
        self._channels: DefaultDict[str, Set[WebSocket]] = defaultdict(set)

    def register(self, websocket: WebSocket, user_id: int) -> None:
        self._users[websocket] = user_id
        self._channels[personal_channel(user_id)].add(websocket)
        logger.info("User %s connected (%d open sockets)", user_id, len(self._users))

    def unregister(self, websocket: WebSocket) -> None:
        user_id = self._users.pop(websocket, None)
        for name in list(self._channels):
            members = self._channels[name]
            members.discard(websocket)
            if not members:
                del self._channels[name]
        if user_id is not None:
            logger.info("User %s disconnected", user_id)

    def user_of(self, websocket: WebSocket) -> int:
        user_id = self._users.get(websocket)
        if user_id is None:
            raise Unavailable()
        return user_id

    def join(self, websocket: WebSocket, match_id: int) -> str:
        user_id = self.user_of(websocket)
        room = conversation_channel(match_id)
        self._channels[room].add(websocket)
        logger.info("User %s joined room %s", user_id, room)
        return room

    def leave(self, websocket: WebSocket, match_id: int) -> None:
        room = conversation_channel(match_id)
        members = self._channels.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self._channels[room]

    def members(self, channel: str) -> Set[WebSocket]:
        return set(self._channels.get(channel, ()))

    @property
    def connection_count(self) -> int:
        return len(self._users)

    def is_member(self, websocket: WebSocket, match_id: int) -> bool:
        return websocket in self._channels.get(conversation_channel(match_id), ())

    def is_connected(self, user_id: int) -> bool:
        return bool(self._channels.get(personal_channel(user_id)))

    async def send(self, websocket: WebSocket, event: str, data: Any) -> None:
        try:
            await websocket.send_json({"event": event, "data": data})
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            # closed or half-closed socket; payload errors propagate
            logger.warning("Dropping socket after failed %s push: %s", event, exc)
            self.unregister(websocket)

    async def broadcast(
        self,
        channel: str,
        event: str,
        data: Any,
        exclude: Optional[WebSocket] = None,
    ) -> int:
        delivered = 0
        for websocket in self.members(channel):
            if websocket is exclude:
                continue
            await self.send(websocket, event, data)
            delivered += 1
        return delivered

    async def send_to_user(self, user_id: int, event: str, data: Any) -> int:
        return await self.broadcast(personal_channel(user_id), event, data)

    async def send_to_match(
        self,
        match_id: int,
        event: str,
        data: Any,
        exclude: Optional[WebSocket] = None,
    ) -> int:
        return await self.broadcast(conversation_channel(match_id), event, data, exclude=exclude)


def get_transport(conn: HTTPConnection) -> RealtimeTransport:
    """Dependency returning the transport built once in main.py."""
    return conn.app.state.transport
