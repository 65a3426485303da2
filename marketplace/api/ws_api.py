"""
Chat WebSocket endpoint (``/ws``) and the presence status route.

Protocol
--------
Frames are JSON text ``{"event": <name>, "data": {...}}`` in both directions.

Client → server: ``typing``, ``markRead``, ``viewingConversation``,
``joinConversation``, ``leaveConversation``, ``ping``.

Server → client: ``connected``, ``newMessage``, ``typingStatus``,
``messagesRead``, ``userStatusChanged``, ``pong``, ``error``.

Close Codes
-----------
- 1008: Policy Violation (missing or invalid token).
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Header, Query, WebSocket, WebSocketDisconnect

from marketplace.api.presence import Connection, registry
from marketplace.api.utils import verify_token
from marketplace.database.core import chat_funcs
from marketplace.database.core.auth_funcs import load_principal
from marketplace.errors import ServiceError

router = APIRouter(tags=["chat"])

logger = logging.getLogger("uvicorn")


def _socket_token(query_token: Optional[str], cookie_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if query_token:
        return query_token
    if cookie_token:
        return cookie_token
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})


async def _handle_event(connection: Connection, event: str, data: dict) -> None:
    user_id = connection.user_id
    reader = {"id": user_id, "username": connection.username}

    if event == "ping":
        await registry.send(user_id, "pong", {})
        return

    if event == "typing":
        is_typing = bool(data.get("is_typing"))
        result = chat_funcs.set_typing(user_id=user_id, conversation_id=data.get("conversation_id"), is_typing=is_typing)
        await registry.emit_to_room(
            result["conversation_id"],
            "typingStatus",
            {"conversation_id": result["conversation_id"], "user_id": user_id, "username": connection.username, "is_typing": is_typing},
            exclude=user_id,
        )
        return

    if event == "markRead":
        result = chat_funcs.mark_as_read(user_id=user_id, conversation_id=data.get("conversation_id"))
        await registry.emit_to_room(
            result["conversation_id"],
            "messagesRead",
            {"conversation_id": result["conversation_id"], "reader": reader},
            exclude=user_id,
        )
        return

    if event in ("viewingConversation", "joinConversation"):
        conversation_id = data.get("conversation_id")
        if not conversation_id:
            raise ValueError("Conversation ID is required")
        if not chat_funcs.is_participant(user_id=user_id, conversation_id=conversation_id):
            raise ValueError("Not a participant of this conversation")
        registry.join(user_id, str(conversation_id))
        if event == "viewingConversation":
            connection.viewing_conversation = str(conversation_id)
            result = chat_funcs.mark_as_read(user_id=user_id, conversation_id=conversation_id)
            await registry.emit_to_room(
                result["conversation_id"],
                "messagesRead",
                {"conversation_id": result["conversation_id"], "reader": reader},
                exclude=user_id,
            )
        return

    if event == "leaveConversation":
        if connection.viewing_conversation == str(data.get("conversation_id")):
            connection.viewing_conversation = None
        return

    raise ValueError(f"Unknown event: {event}")


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    cookie_token: Optional[str] = Cookie(None, alias="token"),
    authorization: Optional[str] = Header(None),
):
    """
    Authenticated chat socket.

    The token is taken from the ``token`` query parameter, the ``token``
    cookie or an ``Authorization: Bearer`` header, in that order.
    """
    await websocket.accept()
    user_id = verify_token(_socket_token(token, cookie_token, authorization))
    if not user_id:
        await websocket.close(code=1008)
        return
    try:
        principal = load_principal(user_id=user_id)
    except ServiceError:
        await websocket.close(code=1008)
        return

    connection = Connection(
        user_id=principal["id"],
        username=principal["username"],
        user_type=principal["user_type"],
        websocket=websocket,
    )
    registry.register(connection)
    conversation_ids = chat_funcs.set_presence(user_id=connection.user_id, online=True)
    for conversation_id in conversation_ids:
        registry.join(connection.user_id, conversation_id)
    logger.info(f"{connection.username} connected to chat")

    await registry.send(connection.user_id, "connected", {"user_id": connection.user_id, "conversations": conversation_ids})
    await registry.emit_to_rooms(
        conversation_ids,
        "userStatusChanged",
        {"user_id": connection.user_id, "is_online": True},
        exclude=connection.user_id,
    )

    try:
        while True:
            raw = await websocket.receive_text()
            connection.touch()
            try:
                frame = json.loads(raw)
            except ValueError:
                await _send_error(websocket, "Malformed event")
                continue
            if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                await _send_error(websocket, "Malformed event")
                continue
            data = frame.get("data") or {}
            if not isinstance(data, dict):
                await _send_error(websocket, "Malformed event")
                continue
            try:
                await _handle_event(connection, frame["event"], data)
            except (ServiceError, ValueError) as e:
                await _send_error(websocket, str(e))
    except WebSocketDisconnect:
        logger.info(f"{connection.username} disconnected from chat")
    finally:
        if registry.unregister(connection.user_id, websocket):
            conversation_ids = chat_funcs.set_presence(user_id=connection.user_id, online=False)
            await registry.emit_to_rooms(
                conversation_ids,
                "userStatusChanged",
                {"user_id": connection.user_id, "is_online": False},
                exclude=connection.user_id,
            )


@router.get("/api/websocket-status")
async def websocket_status():
    return registry.status()
