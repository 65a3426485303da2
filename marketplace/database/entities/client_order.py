"""
ClientOrder ORM Model (self-service orders)
===========================================

Orders placed by clients through the storefront (``client_order`` table).
A checkout spanning several suppliers produces one ``ClientOrder`` per
supplier; tax and shipping are split proportionally to each supplier's
subtotal.

``items``: ``[{product_id, title, price, quantity, total, image}]``
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, DateTime, Float, ForeignKey, Uuid, event
from sqlalchemy.ext.mutable import MutableDict, MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.text import generate_document_number
from marketplace.database.helpers.timeutils import utcnow

CLIENT_ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled", "returned")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
NON_CANCELLABLE_STATUSES = ("shipped", "delivered", "cancelled")


class ClientOrder(declarativeBase):
    """
    ORM model for the `client_order` table.

    Attributes
    ----------
    order_no : str
        ``CLT-XXXXXXXX``.
    client_id, supplier_id : UUID
        Buyer and seller accounts.
    subtotal, tax, shipping, total : float
        Money amounts for this supplier's share of the checkout.
    status : str
        One of ``CLIENT_ORDER_STATUSES``.
    payment_status : str
        One of ``PAYMENT_STATUSES``.
    """

    __tablename__ = "client_order"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    order_no: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, unique=True)
    client_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    items: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    tax: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    shipping: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="pending")
    payment_status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="pending")
    payment_method: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="cash_on_delivery")
    shipping_address: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    customer_details: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    notes: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    cancel_reason: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    return_reason: Mapped[Optional[str]] = mapped_column(TEXT, nullable=True)
    placed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, client_id: UUID, supplier_id: UUID, items: list, **fields):
        now = utcnow()
        self.id = uuid.uuid4()
        self.order_no = generate_document_number("CLT")
        self.client_id = client_id
        self.supplier_id = supplier_id
        self.items = list(items)
        self.subtotal = 0
        self.tax = 0
        self.shipping = 0
        self.total = 0
        self.status = "pending"
        self.payment_status = "pending"
        self.payment_method = "cash_on_delivery"
        self.shipping_address = {}
        self.customer_details = {}
        self.notes = ""
        self.cancel_reason = None
        self.return_reason = None
        self.placed_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)

    @property
    def created_at(self) -> datetime:
        return self.placed_at

    def can_cancel(self) -> bool:
        return self.status not in NON_CANCELLABLE_STATUSES

    def can_return(self) -> bool:
        return self.status == "delivered"

    def __str__(self) -> str:
        return f"ClientOrder: {self.order_no}, status: {self.status}, total: {self.total}"


@event.listens_for(ClientOrder, "before_update")
def _client_order_before_update(mapper, connection, target: ClientOrder) -> None:
    target.updated_at = utcnow()
