"""
Order ORM Model (legacy supplier-created orders)
===============================================

Orders a supplier records on a customer's behalf (``supplier_order`` table).

Items and calculations are embedded JSON documents:

- ``products``: ``[{product_id, title, category, price, cost_per_item, qty, track_quantity, media}]``
- ``calculations``: ``{subtotal, discount_percentage, tax_percentage,
  total_discount, total_tax, total, shipping_address}``

Status flow: ``pending`` → ``processing`` (paid) → ``completed`` (paid and
fulfilled) → ``delivered``; ``cancelled`` and ``returned`` (restocked) end it.
Self-service orders live in :mod:`marketplace.database.entities.client_order`.
"""

import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Boolean, DateTime, Float, ForeignKey, Uuid, event
from sqlalchemy.ext.mutable import MutableDict, MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.text import generate_document_number
from marketplace.database.helpers.timeutils import utcnow

ORDER_STATUSES = ("pending", "processing", "completed", "delivered", "cancelled", "returned")


class Order(declarativeBase):
    """
    ORM model for the `supplier_order` table.

    Attributes
    ----------
    order_no : str
        ``ORD-XXXXXXXX``.
    customer_id : UUID
        The supplier's :class:`Customer` the order was recorded for.
    market_price : str
        Currency code (default ``PKR``).
    bill_paid : float
        Amount paid so far.
    payment_status, fulfillment_status, delivery_status : bool
        Lifecycle flags driving ``status``.
    """

    __tablename__ = "supplier_order"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    customer_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("customer.id"), nullable=False)
    order_no: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, unique=True)
    products: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    calculations: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    notes: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    market_price: Mapped[str] = mapped_column(VARCHAR(8), nullable=False, default="PKR")
    tags: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    channel: Mapped[str] = mapped_column(VARCHAR(64), nullable=False, default="Offline Store")
    payment_due_later: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shipping_address: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    bill_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="pending")
    payment_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fulfillment_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivery_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, supplier_id: UUID, customer_id: UUID, products: list, calculations: dict, **fields):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.customer_id = customer_id
        self.order_no = generate_document_number("ORD")
        self.products = list(products)
        self.calculations = dict(calculations)
        self.notes = ""
        self.market_price = "PKR"
        self.tags = []
        self.channel = "Offline Store"
        self.payment_due_later = False
        self.shipping_address = ""
        self.bill_paid = 0
        self.status = "pending"
        self.payment_status = False
        self.fulfillment_status = False
        self.delivery_status = False
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)

    @property
    def total(self) -> float:
        return float((self.calculations or {}).get("total", 0) or 0)

    def __str__(self) -> str:
        return f"Order: {self.order_no}, status: {self.status}, total: {self.total}"


@event.listens_for(Order, "before_update")
def _order_before_update(mapper, connection, target: Order) -> None:
    target.updated_at = utcnow()
