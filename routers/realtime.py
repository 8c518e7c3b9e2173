import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette import status

from core.database import get_session_factory
from core.errors import AppError, Forbidden, InvalidState, Unauthenticated
from core.security import authenticate_token
from services import chat, match_store
from services.realtime import (
    EVENT_ERROR,
    EVENT_JOINED,
    EVENT_TYPING,
    RealtimeTransport,
    get_transport,
)

router = APIRouter(tags=["Realtime"])
logger = logging.getLogger(__name__)


def _bearer(header: Optional[str]) -> Optional[str]:
    if header and header.lower().startswith("bearer "):
        return header.split(" ", 1)[1].strip()
    return None


def _match_id(data: Dict[str, Any]) -> int:
    try:
        return int(data["matchId"])
    except (KeyError, TypeError, ValueError):
        raise InvalidState("matchId is required")


class Connection:
    """One authenticated socket and the handlers for its client events."""

    def __init__(
        self,
        websocket: WebSocket,
        user_id: int,
        transport: RealtimeTransport,
        session_factory: async_sessionmaker,
    ):
        self.websocket = websocket
        self.user_id = user_id
        self.transport = transport
        self.session_factory = session_factory

    async def on_join(self, data: Dict[str, Any]) -> None:
        match_id = _match_id(data)
        async with self.session_factory() as db:
            await match_store.get_for_participant(db, match_id, self.user_id)
        room = self.transport.join(self.websocket, match_id)
        await self.transport.send(self.websocket, EVENT_JOINED, {"matchId": match_id, "room": room})

    async def on_leave(self, data: Dict[str, Any]) -> None:
        self.transport.leave(self.websocket, _match_id(data))

    async def on_message(self, data: Dict[str, Any]) -> None:
        match_id = _match_id(data)
        async with self.session_factory() as db:
            message = await chat.send_message(db, match_id, self.user_id, data.get("content") or "")
            match = await match_store.get_match(db, match_id)
        # the broadcast is the sender's confirmation too
        await chat.publish_message(self.transport, match, message)

    async def on_typing(self, data: Dict[str, Any]) -> None:
        match_id = _match_id(data)
        if not self.transport.is_member(self.websocket, match_id):
            raise Forbidden("Join the conversation first")
        await self.transport.send_to_match(
            match_id,
            EVENT_TYPING,
            {"matchId": match_id, "userId": self.user_id, "isTyping": bool(data.get("isTyping"))},
            exclude=self.websocket,
        )

    async def dispatch(self, raw: str) -> None:
        try:
            frame = json.loads(raw)
            event = frame["event"]
            data = frame.get("data") or {}
        except (ValueError, KeyError, TypeError, AttributeError):
            await self._error("Malformed frame", status.WS_1003_UNSUPPORTED_DATA)
            return

        handler = getattr(self, f"on_{event}", None) if isinstance(event, str) else None
        if handler is None:
            await self._error(f"Unknown event: {event}", status.WS_1003_UNSUPPORTED_DATA)
            return

        try:
            await handler(data)
        except AppError as exc:
            await self._error(exc.detail, exc.status_code)
        except Exception:  # noqa: BLE001
            logger.exception("Realtime %s event from user %s failed", event, self.user_id)
            await self._error(f"Failed to handle {event}", status.WS_1011_INTERNAL_ERROR)

    async def _error(self, message: str, code: int) -> None:
        await self.transport.send(self.websocket, EVENT_ERROR, {"message": message, "code": code})


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    transport: RealtimeTransport = Depends(get_transport),
):
    credential = token or _bearer(websocket.headers.get("authorization"))
    try:
        async with session_factory() as db:
            user = await authenticate_token(credential, db)
            user_id = user.id
    except Unauthenticated:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    transport.register(websocket, user_id)
    connection = Connection(websocket, user_id, transport, session_factory)
    try:
        while True:
            raw = await websocket.receive_text()
            await connection.dispatch(raw)
    except WebSocketDisconnect:
        pass
    finally:
        transport.unregister(websocket)
