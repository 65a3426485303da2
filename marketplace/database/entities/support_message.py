"""
SupportMessage ORM Model
========================

Messages sent through the public contact, feedback and support forms
(``support_message`` table). ``kind`` selects the form; the sender may be
anonymous.

- ``contact``: subject and message; status ∈ ``CONTACT_STATUSES``
- ``feedback``: message holds the feedback, plus ``suggestions``,
  ``feedback_type`` and a 0-5 ``rating``; status ∈ ``FEEDBACK_STATUSES``
- ``support``: subject, message and ``category``; gets a ticket number
  ``SUP-YYYYMMDD-NNNN``; status ∈ ``SUPPORT_STATUSES``
"""

import secrets
import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import TEXT, VARCHAR, DateTime, ForeignKey, Integer, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

MESSAGE_KINDS = ("contact", "feedback", "support")
CONTACT_STATUSES = ("new", "read", "replied", "closed")
FEEDBACK_STATUSES = ("new", "read", "resolved")
SUPPORT_STATUSES = ("open", "in-progress", "resolved", "closed")
FEEDBACK_TYPES = ("general", "product", "service", "website", "other")
SUPPORT_CATEGORIES = ("account", "order", "product", "payment", "delivery", "technical", "other")


def ticket_number(now: datetime) -> str:
    return f"SUP-{now:%Y%m%d}-{1000 + secrets.randbelow(9000)}"


class SupportMessage(declarativeBase):
    """ORM model for the `support_message` table."""

    __tablename__ = "support_message"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    kind: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, index=True)
    user_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=True)
    fullname: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    email: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="")
    subject: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    message: Mapped[str] = mapped_column(TEXT, nullable=False)
    suggestions: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    feedback_type: Mapped[Optional[str]] = mapped_column(VARCHAR(16), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[Optional[str]] = mapped_column(VARCHAR(16), nullable=True)
    ticket_number: Mapped[Optional[str]] = mapped_column(VARCHAR(32), nullable=True, unique=True)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(
        self,
        kind: str,
        fullname: str,
        email: str,
        message: str,
        user_id: Optional[UUID] = None,
        phone_number: str = "",
        subject: str = "",
        suggestions: str = "",
        feedback_type: Optional[str] = None,
        rating: int = 0,
        category: Optional[str] = None,
    ):
        now = utcnow()
        self.id = uuid.uuid4()
        self.kind = kind
        self.user_id = user_id
        self.fullname = fullname
        self.email = email
        self.phone_number = phone_number
        self.subject = subject
        self.message = message
        self.suggestions = suggestions
        self.feedback_type = feedback_type
        self.rating = rating
        self.category = category
        self.ticket_number = ticket_number(now) if kind == "support" else None
        self.status = "open" if kind == "support" else "new"
        self.created_at = now
        self.updated_at = now

    def __repr__(self):
        return f"SupportMessage: {self.kind} from {self.email}"


@event.listens_for(SupportMessage, "before_update")
def _support_before_update(mapper, connection, target: SupportMessage) -> None:
    target.updated_at = utcnow()
