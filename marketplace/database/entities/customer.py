"""
Customer ORM Model
==================

A supplier's customer record (``customer`` table). Created by the supplier or
upserted automatically when a client places an order with that supplier.
``amount_spent`` and ``orders_count`` are kept current by the order flows.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Boolean, DateTime, Float, ForeignKey, Integer, Uuid, event
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

CONTACT_STATUSES = ("active", "inactive", "deleted")


class Customer(declarativeBase):
    """ORM model for the `customer` table."""

    __tablename__ = "customer"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    client_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=True)
    """Marketplace account the record was created from, if any."""
    first_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False)
    last_name: Mapped[str] = mapped_column(VARCHAR(100), nullable=False, default="")
    language: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="English")
    email: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(VARCHAR(64), nullable=False, default="")
    email_subscribe: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    msg_subscribe: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_address: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    notes: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    tags: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    amount_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    orders_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, supplier_id: UUID, first_name: str, email: str, **fields):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.client_id = None
        self.first_name = first_name.strip()
        self.last_name = ""
        self.language = "English"
        self.email = email.strip().lower()
        self.phone_number = ""
        self.email_subscribe = False
        self.msg_subscribe = False
        self.default_address = {}
        self.notes = ""
        self.tags = ""
        self.amount_spent = 0
        self.orders_count = 0
        self.status = "active"
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def record_order(self, amount: float) -> None:
        self.amount_spent = round((self.amount_spent or 0) + (amount or 0), 2)
        self.orders_count = (self.orders_count or 0) + 1


@event.listens_for(Customer, "before_update")
def _customer_before_update(mapper, connection, target: Customer) -> None:
    target.updated_at = utcnow()
