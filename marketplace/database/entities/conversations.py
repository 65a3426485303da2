"""
Conversation ORM Model
======================

The ``Conversation`` ORM model represents a chat thread between marketplace
users, stored in the ``conversation`` table with its members in
``conversation_participant``.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``)
- Participants as a many-to-many relation to ``app_user``
- Denormalized last-message preview (``last_message_id``, ``last_message_text``,
  ``last_message_time``) used to sort and render conversation lists
- ``unread_count``: per-participant unread counters keyed by user id string
- ``is_active`` flag; inactive conversations are hidden and never joined as rooms

Save hook
~~~~~~~~~
Before insert, every participant without a counter gets ``0``.

Integration notes
~~~~~~~~~~~~~~~~~
Counters are mutated only inside ``@transactional`` service functions in
``marketplace.database.core.chat_funcs``; the REST handlers and the WebSocket
event handlers both go through those functions.
"""

import uuid
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, Boolean, Column, DateTime, ForeignKey, Table, Uuid, event
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.database.config.connection_engine import declarativeBase, metadata
from marketplace.database.helpers.timeutils import utcnow

conversation_participant = Table(
    "conversation_participant",
    metadata,
    Column("conversation_id", Uuid(as_uuid=True), ForeignKey("conversation.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid(as_uuid=True), ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True),
)
"""Membership of users in conversations."""


class Conversation(declarativeBase):
    """
    ORM model for the `conversation` table.

    Attributes
    ----------
    id : UUID
        Primary key. Unique identifier for the conversation.
    participants : list[User]
        Members of the conversation.
    last_message_id : UUID | None
        Most recent message.
    last_message_text : str
        Text preview of the most recent message.
    last_message_time : datetime | None
        Timestamp of the most recent message (UTC).
    unread_count : dict[str, int]
        Unread messages per participant id.
    is_active : bool
        Whether the conversation is listed and joined as a room.
    """

    __tablename__ = "conversation"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    """Primary key. UUID of the conversation."""

    last_message_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    """Id of the latest message."""

    last_message_text: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    """Preview text of the latest message."""

    last_message_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    """Time of the latest message (UTC, timezone-aware)."""

    unread_count: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    """Per-participant unread counters keyed by user id string."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    """Inactive conversations are hidden from lists and rooms."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    """Bumped on every new message; conversation lists sort on it."""

    participants = relationship("User", secondary=conversation_participant, lazy="selectin")

    def __init__(self, conversation_id: Optional[UUID] = None):
        """
        Initialize a new, empty Conversation.

        Parameters
        ----------
        conversation_id : UUID | None, optional
            Explicit id; a new UUID is generated when omitted.
        """
        now = utcnow()
        self.id = conversation_id or uuid.uuid4()
        self.last_message_id = None
        self.last_message_text = ""
        self.last_message_time = None
        self.unread_count = {}
        self.is_active = True
        self.created_at = now
        self.updated_at = now

    @classmethod
    def create_with_participants(cls, participants: Iterable) -> "Conversation":
        """Build a conversation with the given users and zeroed unread counters."""
        conversation = cls()
        for user in participants:
            conversation.participants.append(user)
        conversation.init_unread_counts()
        return conversation

    def participant_ids(self) -> list:
        return [p.id for p in self.participants]

    def has_participant(self, user_id) -> bool:
        return str(user_id) in {str(p.id) for p in self.participants}

    def init_unread_counts(self) -> None:
        for user in self.participants:
            self.unread_count.setdefault(str(user.id), 0)

    def get_unread_count(self, user_id) -> int:
        return int(self.unread_count.get(str(user_id), 0))

    def set_unread_count(self, user_id, count: int) -> None:
        self.unread_count[str(user_id)] = max(0, int(count))

    def increment_unread_count(self, user_id) -> None:
        self.set_unread_count(user_id, self.get_unread_count(user_id) + 1)

    def reset_unread_count(self, user_id) -> None:
        self.set_unread_count(user_id, 0)

    def __str__(self) -> str:
        return f"Conversation: id:{self.id}, participants: {[str(p) for p in self.participant_ids()]}"


@event.listens_for(Conversation, "before_insert")
def _conversation_before_insert(mapper, connection, target: Conversation) -> None:
    target.init_unread_counts()
