"""
Message ORM Model
=================

The ``Message`` ORM model represents a single chat message within a
conversation.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``)
- Foreign keys to ``conversation.id`` and the sender's ``app_user.id``
- ``attachments``: list of stored file paths/URLs
- ``read_by``: user ids that have read the message; appended to, never compacted
- Soft delete (``is_deleted``) and edit flag (``is_edited``)
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow


class Message(declarativeBase):
    """
    ORM model for the `chat_message` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    conversation_id : UUID
        Conversation the message belongs to.
    sender_id : UUID
        Author of the message.
    text : str
        Message body.
    read_by : list[str]
        Ids of users who have read the message (the sender is always included).
    created_at : datetime
        Insertion time; the only ordering guarantee for messages.
    """

    __tablename__ = "chat_message"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    """Primary key. UUID of the message."""

    conversation_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("conversation.id"), nullable=False, index=True)
    """Foreign key to the conversation this message belongs to."""

    sender_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    """Foreign key to the author."""

    text: Mapped[str] = mapped_column(TEXT, nullable=False)
    """Text content of the message (cannot be null)."""

    attachments: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    read_by: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    """Timestamp when the message was created (UTC)."""

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        text: str,
        attachments: Optional[list] = None,
        created_at: Optional[datetime] = None,
    ):
        """
        Initialize a new Message. The sender is marked as having read it.

        Parameters
        ----------
        conversation_id : UUID
            ID of the conversation this message belongs to.
        sender_id : UUID
            ID of the author.
        text : str
            The content of the message.
        attachments : list | None, optional
            Stored attachment paths.
        created_at : datetime | str | None, optional
            Creation time; defaults to now. Accepts an ISO8601 string.
        """
        self.id = uuid.uuid4()
        self.conversation_id = conversation_id
        self.sender_id = sender_id
        self.text = text
        self.attachments = list(attachments or [])
        self.read_by = [str(sender_id)]
        self.is_edited = False
        self.is_deleted = False
        if isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at)
        else:
            self.created_at = created_at or utcnow()
        self.updated_at = self.created_at

    def mark_read_by(self, user_id) -> bool:
        """Append ``user_id`` to ``read_by``; returns False if already present."""
        key = str(user_id)
        if key in self.read_by:
            return False
        self.read_by.append(key)
        return True

    def __str__(self) -> str:
        return (
            f"Message: id:{self.id}, conversation: {self.conversation_id}, "
            f"sender: {self.sender_id}, "
            f"message: {self.text}, "
            f"time_created: {self.created_at}"
        )
