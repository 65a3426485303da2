"""
Service-layer operations for chat: conversations, messages, read state,
typing and presence, and in-app notifications.

All functions are wrapped with the `@transactional` decorator. A message send
inserts the message, bumps every recipient's unread counter and creates their
notifications in one transaction; fan-out over the socket happens afterwards
in the API layer.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.daos.chat_status_dao import ChatStatusDao, NotificationDao
from marketplace.database.daos.conversation_dao import ConversationDao
from marketplace.database.daos.message_dao import MessageDao
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.conversations import Conversation
from marketplace.database.entities.messages import Message
from marketplace.database.entities.notification import Notification
from marketplace.database.helpers.ids import to_uuid, to_uuid_list
from marketplace.database.helpers.text import truncate
from marketplace.database.helpers.timeutils import isoformat, utcnow
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, NotFoundError, UnauthorizedError

logger = logging.getLogger("uvicorn")


def _status_map(session: Session, user_ids) -> dict:
    statuses = ChatStatusDao().fetchStatuses(session=session, user_ids=list(user_ids))
    return {s.user_id: {"is_online": s.is_online, "last_seen": isoformat(s.last_seen)} for s in statuses}


def _user_card(user, status: Optional[dict] = None) -> dict:
    status = status or {}
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "user_type": user.user_type,
        "is_online": status.get("is_online", False),
        "last_seen": status.get("last_seen"),
    }


def message_to_dict(message: Message, sender=None, viewer_id=None) -> dict:
    return {
        "id": str(message.id),
        "conversation_id": str(message.conversation_id),
        "text": message.text,
        "sender": {
            "id": str(message.sender_id),
            "username": sender.username if sender else "",
            "user_type": sender.user_type if sender else "",
        },
        "is_read": str(viewer_id) in (message.read_by or []) if viewer_id else False,
        "is_edited": message.is_edited,
        "attachments": list(message.attachments or []),
        "created_at": isoformat(message.created_at),
        "updated_at": isoformat(message.updated_at),
    }


def _participant_conversation(session: Session, user_id: uuid.UUID, conversation_id) -> Conversation:
    if not conversation_id:
        raise BadRequestError("Conversation ID is required")
    conversation = ConversationDao().fetchConversationById(session=session, conversation_id=to_uuid(conversation_id))
    if conversation is None or not conversation.has_participant(user_id):
        raise NotFoundError("Conversation not found")
    return conversation


def _mark_conversation_read(session: Session, conversation: Conversation, user_id: uuid.UUID) -> int:
    marked = 0
    for message in MessageDao().fetchUnreadMessages(session=session, conversation_id=conversation.id, user_id=user_id):
        if message.mark_read_by(user_id):
            marked += 1
    conversation.reset_unread_count(user_id)
    return marked


@transactional
def list_conversations(session: Session, user_id: str) -> dict:
    """Active conversations newest activity first, with the other participants' presence."""
    user_id = to_uuid(user_id)
    conversations = ConversationDao().fetchUserConversations(session=session, user_id=user_id)
    others = {p.id for c in conversations for p in c.participants if p.id != user_id}
    statuses = _status_map(session, others)
    rows = []
    for conversation in conversations:
        rows.append(
            {
                "id": str(conversation.id),
                "participants": [_user_card(p, statuses.get(p.id)) for p in conversation.participants if p.id != user_id],
                "last_message": (
                    {"text": conversation.last_message_text, "created_at": isoformat(conversation.last_message_time)}
                    if conversation.last_message_id
                    else None
                ),
                "unread_count": conversation.get_unread_count(user_id),
                "updated_at": isoformat(conversation.updated_at),
            }
        )
    return {"message": "Conversations retrieved successfully", "conversations": rows}


@transactional
def get_messages(session: Session, user_id: str, conversation_id: str, limit: int = 50, page: int = 1) -> dict:
    """A page of messages newest first; marks the conversation read for the caller."""
    user_id = to_uuid(user_id)
    conversation = _participant_conversation(session, user_id, conversation_id)
    limit = min(100, max(1, int(limit or 50)))
    page = max(1, int(page or 1))
    messages = MessageDao().fetchMessages(session=session, conversation_id=conversation.id, limit=limit, offset=(page - 1) * limit)
    _mark_conversation_read(session, conversation, user_id)
    senders = {p.id: p for p in conversation.participants}
    return {
        "message": "Messages retrieved successfully",
        "conversation_id": str(conversation.id),
        "messages": [message_to_dict(m, senders.get(m.sender_id), user_id) for m in messages],
        "has_more": len(messages) == limit,
        "current_page": page,
    }


@transactional
def start_conversation(session: Session, user_id: str, participant_id: str) -> dict:
    """Return the direct conversation between two users, creating it if needed."""
    user_dao = UserDao()
    conversation_dao = ConversationDao()
    if not participant_id:
        raise BadRequestError("Participant ID is required")
    user_id = to_uuid(user_id)
    participant_id = to_uuid(participant_id)
    if user_id == participant_id:
        raise BadRequestError("Cannot start conversation with yourself")
    participant = user_dao.fetchUserById(session=session, user_id=participant_id)
    if participant is None:
        raise NotFoundError("Participant not found")

    conversation = conversation_dao.fetchDirectConversation(session=session, user_id=user_id, other_id=participant_id)
    created = conversation is None
    if created:
        user = user_dao.fetchUserById(session=session, user_id=user_id)
        if user is None:
            raise UnauthorizedError("User not found")
        conversation = conversation_dao.createConversation(
            session=session, conversation=Conversation.create_with_participants([user, participant])
        )
        logger.info(f"Conversation {conversation.id} started between {user_id} and {participant_id}")
    status = ChatStatusDao().fetchOrCreateStatus(session=session, user_id=participant_id)
    return {
        "message": "Conversation started successfully",
        "created": created,
        "conversation": {
            "id": str(conversation.id),
            "participant": _user_card(participant, {"is_online": status.is_online, "last_seen": isoformat(status.last_seen)}),
            "last_message": (
                {"text": conversation.last_message_text, "created_at": isoformat(conversation.last_message_time)}
                if conversation.last_message_id
                else None
            ),
            "unread_count": conversation.get_unread_count(user_id),
            "created_at": isoformat(conversation.created_at),
            "updated_at": isoformat(conversation.updated_at),
        },
    }


@transactional
def send_message(session: Session, user_id: str, conversation_id: str, text: str, attachments: Optional[list] = None) -> dict:
    """
    Persist a message and update every recipient's unread counter and notifications.

    Returns
    -------
    dict
        ``{"message", "sent_message", "deliveries"}`` where ``deliveries`` is
        one ``{"user_id", "payload"}`` per recipient for the ``newMessage``
        socket event.
    """
    if not conversation_id or not text:
        raise BadRequestError("Conversation ID and message text are required")
    user_id = to_uuid(user_id)
    conversation = _participant_conversation(session, user_id, conversation_id)
    sender = next(p for p in conversation.participants if p.id == user_id)

    message = MessageDao().createMessage(
        session=session, message=Message(conversation_id=conversation.id, sender_id=user_id, text=text, attachments=attachments)
    )
    conversation.last_message_id = message.id
    conversation.last_message_text = text
    conversation.last_message_time = message.created_at
    conversation.updated_at = utcnow()

    notification_dao = NotificationDao()
    recipients = [p.id for p in conversation.participants if p.id != user_id]
    for recipient_id in recipients:
        conversation.increment_unread_count(recipient_id)
        notification_dao.createNotification(
            session=session,
            notification=Notification(
                recipient_id=recipient_id,
                sender_id=user_id,
                type="message",
                message=truncate(text, 50),
                conversation_id=conversation.id,
            ),
        )

    sent = message_to_dict(message, sender)
    deliveries = [
        {
            "user_id": str(recipient_id),
            "payload": {
                "message": sent,
                "conversation": {
                    "id": str(conversation.id),
                    "unread_count": conversation.get_unread_count(recipient_id),
                    "last_message": {"text": message.text, "created_at": isoformat(message.created_at)},
                },
            },
        }
        for recipient_id in recipients
    ]
    return {"message": "Message sent successfully", "sent_message": sent, "deliveries": deliveries}


@transactional
def mark_as_read(session: Session, user_id: str, conversation_id: str) -> dict:
    user_id = to_uuid(user_id)
    conversation = _participant_conversation(session, user_id, conversation_id)
    marked = _mark_conversation_read(session, conversation, user_id)
    return {"message": "Messages marked as read", "conversation_id": str(conversation.id), "updated_count": marked}


@transactional
def get_user_status(session: Session, user_ids: List[str]) -> dict:
    """Presence per requested user; users without a status row report offline."""
    if not user_ids or not isinstance(user_ids, list):
        raise BadRequestError("User IDs array is required")
    statuses = _status_map(session, to_uuid_list(user_ids))
    result = {}
    for raw_id in user_ids:
        status = statuses.get(to_uuid(raw_id))
        result[str(raw_id)] = status or {"is_online": False, "last_seen": None}
    return {"message": "User statuses retrieved successfully", "statuses": result}


@transactional
def set_typing(session: Session, user_id: str, conversation_id: str, is_typing: bool) -> dict:
    user_id = to_uuid(user_id)
    conversation = _participant_conversation(session, user_id, conversation_id)
    ChatStatusDao().fetchOrCreateStatus(session=session, user_id=user_id).set_typing(conversation.id, bool(is_typing))
    return {"message": f"Typing status {'started' if is_typing else 'stopped'}", "conversation_id": str(conversation.id)}


@transactional
def get_notifications(session: Session, user_id: str, limit: int = 20, page: int = 1) -> dict:
    notification_dao = NotificationDao()
    user_id = to_uuid(user_id)
    limit = min(100, max(1, int(limit or 20)))
    page = max(1, int(page or 1))
    notifications = notification_dao.fetchNotifications(session=session, recipient_id=user_id, limit=limit, offset=(page - 1) * limit)
    senders = {u.id: u for u in UserDao().fetchUsersByIds(session=session, user_ids=list({n.sender_id for n in notifications if n.sender_id}))}
    rows = []
    for notification in notifications:
        sender = senders.get(notification.sender_id)
        rows.append(
            {
                "id": str(notification.id),
                "sender": {"id": str(sender.id), "username": sender.username, "user_type": sender.user_type} if sender else None,
                "type": notification.type,
                "message": notification.message,
                "conversation_id": str(notification.conversation_id) if notification.conversation_id else None,
                "is_read": notification.is_read,
                "created_at": isoformat(notification.created_at),
            }
        )
    return {
        "message": "Notifications retrieved successfully",
        "notifications": rows,
        "unread_count": notification_dao.countNotifications(session=session, recipient_id=user_id, unread_only=True),
        "has_more": len(rows) == limit,
        "current_page": page,
    }


@transactional
def mark_notifications_read(session: Session, user_id: str, notification_ids: List[str]) -> dict:
    if notification_ids is None or not isinstance(notification_ids, list):
        raise BadRequestError("Notification IDs array is required")
    updated = NotificationDao().markRead(session=session, recipient_id=to_uuid(user_id), notification_ids=to_uuid_list(notification_ids))
    return {"message": "Notifications marked as read", "updated_count": updated}


@transactional
def search_users(session: Session, user_id: str, query: str) -> dict:
    if not query or not query.strip():
        raise BadRequestError("Search query is required")
    users = UserDao().searchUsers(session=session, query_text=query, exclude_id=to_uuid(user_id), limit=10)
    statuses = _status_map(session, [u.id for u in users])
    return {"message": "Users found", "users": [_user_card(u, statuses.get(u.id)) for u in users]}


# ---------------------------------------------------------------------------
# Presence (used by the WebSocket endpoint)
# ---------------------------------------------------------------------------


@transactional
def set_presence(session: Session, user_id: str, online: bool) -> List[str]:
    """Persist online/offline and return the user's active conversation ids."""
    user_id = to_uuid(user_id)
    ChatStatusDao().fetchOrCreateStatus(session=session, user_id=user_id).set_online(bool(online))
    return [str(c.id) for c in ConversationDao().fetchUserConversations(session=session, user_id=user_id)]


@transactional
def force_offline(session: Session, user_ids: List[str]) -> None:
    status_dao = ChatStatusDao()
    for user_id in to_uuid_list(user_ids):
        status_dao.fetchOrCreateStatus(session=session, user_id=user_id).set_online(False)


@transactional
def is_participant(session: Session, user_id: str, conversation_id: str) -> bool:
    conversation = ConversationDao().fetchConversationById(session=session, conversation_id=to_uuid(conversation_id))
    return bool(conversation and conversation.is_active and conversation.has_participant(user_id))


@transactional
def count_unread_notifications(session: Session, user_id: str) -> dict:
    unread = NotificationDao().countNotifications(session=session, recipient_id=to_uuid(user_id), unread_only=True)
    return {"message": "Unread count retrieved successfully", "unread_count": unread}
