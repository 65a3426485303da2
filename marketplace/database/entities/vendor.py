"""
Vendor ORM Model
================

Suppliers' upstream vendors (``vendor`` table), referenced by purchase
orders and by ``Product.search_vendor``. Soft-deleted via ``status = "deleted"``.
"""

import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import TEXT, VARCHAR, DateTime, ForeignKey, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow


class Vendor(declarativeBase):
    """ORM model for the `vendor` table."""

    __tablename__ = "vendor"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False)
    last_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False, default="")
    email: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    phone: Mapped[str] = mapped_column(VARCHAR(64), nullable=False, default="")
    company: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    address: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    apartment: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    city: Mapped[str] = mapped_column(VARCHAR(128), nullable=False, default="")
    postal_code: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="")
    country: Mapped[str] = mapped_column(VARCHAR(128), nullable=False, default="")
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, supplier_id: UUID, first_name: str, **fields):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.first_name = first_name.strip()
        self.last_name = ""
        self.email = ""
        self.phone = ""
        self.company = ""
        self.address = ""
        self.apartment = ""
        self.city = ""
        self.postal_code = ""
        self.country = ""
        self.status = "active"
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)

    @property
    def vendor_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@event.listens_for(Vendor, "before_update")
def _vendor_before_update(mapper, connection, target: Vendor) -> None:
    target.updated_at = utcnow()
