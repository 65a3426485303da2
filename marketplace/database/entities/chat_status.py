"""
ChatStatus ORM Model
====================

Persisted presence for each user (``chat_status`` table): online flag,
``last_seen`` and the per-conversation typing map ``is_typing``
(conversation id string → bool).

The WebSocket layer writes ``is_online``/``last_seen`` on connect, disconnect
and idle cleanup; typing is written by both the ``typing`` socket event and
the ``/chat/typing`` REST endpoint.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow


class ChatStatus(declarativeBase):
    """ORM model for the `chat_status` table."""

    __tablename__ = "chat_status"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, unique=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_typing: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    last_seen: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, user_id: UUID):
        now = utcnow()
        self.id = uuid.uuid4()
        self.user_id = user_id
        self.is_online = False
        self.is_typing = {}
        self.last_seen = now
        self.updated_at = now

    def set_online(self, online: bool) -> None:
        now = utcnow()
        self.is_online = online
        self.last_seen = now
        self.updated_at = now
        if not online:
            self.is_typing.clear()

    def set_typing(self, conversation_id, typing: bool) -> None:
        self.is_typing[str(conversation_id)] = bool(typing)
        self.updated_at = utcnow()
