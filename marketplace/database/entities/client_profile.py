"""
ClientProfile ORM Model
=======================

Profile details and account security preferences of a client account
(``client_profile`` table), created on first access.
"""

import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import TEXT, VARCHAR, Boolean, DateTime, ForeignKey, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

# field -> maximum length
PROFILE_FIELDS = {
    "profile_img": 500,
    "full_name": 100,
    "phone_number": 20,
    "company_name": 100,
    "business_type": 100,
    "address": 500,
    "city": 100,
    "about": 2000,
}
SECURITY_FIELDS = ("two_factor", "email_notify_for_logins", "remember_30days")


class ClientProfile(declarativeBase):
    """ORM model for the `client_profile` table."""

    __tablename__ = "client_profile"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, unique=True)
    profile_img: Mapped[str] = mapped_column(VARCHAR(500), nullable=False, default="")
    full_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False, default="")
    phone_number: Mapped[str] = mapped_column(VARCHAR(20), nullable=False, default="")
    company_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False, default="")
    business_type: Mapped[str] = mapped_column(VARCHAR(100), nullable=False, default="")
    address: Mapped[str] = mapped_column(VARCHAR(500), nullable=False, default="")
    city: Mapped[str] = mapped_column(VARCHAR(100), nullable=False, default="")
    about: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    two_factor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_notify_for_logins: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    remember_30days: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, user_id: UUID):
        now = utcnow()
        self.id = uuid.uuid4()
        self.user_id = user_id
        for field in PROFILE_FIELDS:
            setattr(self, field, "")
        for field in SECURITY_FIELDS:
            setattr(self, field, False)
        self.created_at = now
        self.updated_at = now


@event.listens_for(ClientProfile, "before_update")
def _profile_before_update(mapper, connection, target: ClientProfile) -> None:
    target.updated_at = utcnow()
