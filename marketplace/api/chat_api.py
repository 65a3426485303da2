"""
Chat REST routes (``/chat``).

State changes go through :mod:`marketplace.database.core.chat_funcs` and
are then pushed to connected sockets through the presence registry, so the
REST and WebSocket paths produce the same events.
"""

from fastapi import APIRouter, Depends

from marketplace.api.auth import get_current_principal
from marketplace.api.encryption import decrypted_body, encrypted_response
from marketplace.api.models import (
    ConversationRef,
    MessagePage,
    NotificationIds,
    SendMessage,
    StartConversation,
    TypingRequest,
    UserSearch,
    UserStatusRequest,
)
from marketplace.api.presence import registry
from marketplace.database.core import chat_funcs

router = APIRouter(prefix="/chat", tags=["chat"])


async def emit_messages_read(conversation_id: str, user: dict) -> None:
    await registry.emit_to_room(
        conversation_id,
        "messagesRead",
        {"conversation_id": conversation_id, "reader": {"id": user["id"], "username": user["username"]}},
        exclude=user["id"],
    )


@router.get("/conversations")
async def conversations(user: dict = Depends(get_current_principal)):
    return encrypted_response(chat_funcs.list_conversations(user_id=user["id"]))


@router.post("/conversation/start")
async def start_conversation(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = StartConversation.model_validate(body)
    result = chat_funcs.start_conversation(user_id=user["id"], participant_id=data.participant_id)
    # both users join the new room right away if they are connected
    created = result.pop("created")
    conversation_id = result["conversation"]["id"]
    for member in (user["id"], result["conversation"]["participant"]["id"]):
        registry.join(member, conversation_id)
    return encrypted_response(result, status_code=201 if created else 200)


@router.post("/messages")
async def messages(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = MessagePage.model_validate(body)
    result = chat_funcs.get_messages(user_id=user["id"], conversation_id=data.conversation_id, limit=data.limit, page=data.page)
    await emit_messages_read(result["conversation_id"], user)
    return encrypted_response(result)


@router.post("/send")
async def send(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    """Persist a message and push ``newMessage`` to every connected recipient."""
    data = SendMessage.model_validate(body)
    result = chat_funcs.send_message(
        user_id=user["id"], conversation_id=data.conversation_id, text=data.text, attachments=data.attachments
    )
    for delivery in result.pop("deliveries"):
        await registry.send(delivery["user_id"], "newMessage", delivery["payload"])
    return encrypted_response(result, status_code=201)


@router.post("/mark-read")
async def mark_read(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = ConversationRef.model_validate(body)
    result = chat_funcs.mark_as_read(user_id=user["id"], conversation_id=data.conversation_id)
    await emit_messages_read(result["conversation_id"], user)
    return encrypted_response(result)


@router.post("/status")
async def status(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = UserStatusRequest.model_validate(body)
    return encrypted_response(chat_funcs.get_user_status(user_ids=data.user_ids))


@router.post("/typing")
async def typing(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = TypingRequest.model_validate(body)
    result = chat_funcs.set_typing(user_id=user["id"], conversation_id=data.conversation_id, is_typing=data.is_typing)
    await registry.emit_to_room(
        result["conversation_id"],
        "typingStatus",
        {"conversation_id": result["conversation_id"], "user_id": user["id"], "username": user["username"], "is_typing": data.is_typing},
        exclude=user["id"],
    )
    return encrypted_response(result)


@router.get("/notifications")
async def notifications(page: int = 1, limit: int = 20, user: dict = Depends(get_current_principal)):
    return encrypted_response(chat_funcs.get_notifications(user_id=user["id"], page=page, limit=limit))


@router.post("/notifications/mark-read")
async def notifications_mark_read(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = NotificationIds.model_validate(body)
    return encrypted_response(chat_funcs.mark_notifications_read(user_id=user["id"], notification_ids=data.notification_ids))


@router.post("/search-users")
async def search_users(body: dict = Depends(decrypted_body), user: dict = Depends(get_current_principal)):
    data = UserSearch.model_validate(body)
    return encrypted_response(chat_funcs.search_users(user_id=user["id"], query=data.query))
