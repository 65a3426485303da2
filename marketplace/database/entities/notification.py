"""
Notification ORM Model
======================

In-app notifications (``notification`` table). Chat creates one ``message``
notification per recipient for every sent message, with the text truncated
to 50 characters.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import TEXT, VARCHAR, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

NOTIFICATION_TYPES = ("message", "order", "system")


class Notification(declarativeBase):
    """ORM model for the `notification` table."""

    __tablename__ = "notification"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    recipient_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    sender_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=True)
    type: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="message")
    message: Mapped[str] = mapped_column(TEXT, nullable=False)
    conversation_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("conversation.id"), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(
        self,
        recipient_id: UUID,
        message: str,
        type: str = "message",
        sender_id: Optional[UUID] = None,
        conversation_id: Optional[UUID] = None,
    ):
        self.id = uuid.uuid4()
        self.recipient_id = recipient_id
        self.sender_id = sender_id
        self.type = type
        self.message = message
        self.conversation_id = conversation_id
        self.is_read = False
        self.created_at = utcnow()
