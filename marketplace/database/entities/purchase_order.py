"""
PurchaseOrder ORM Model
=======================

Stock purchases from vendors (``purchase_order`` table). Receiving a
purchase order adds every line's quantity to the matching product.

``products``: ``[{product_id, title, category, description, price, quantity, total}]``

Save hook: ``products_count`` is recomputed from ``products`` on every save.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Boolean, DateTime, ForeignKey, Integer, Uuid, event
from sqlalchemy.ext.mutable import MutableDict, MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.text import generate_document_number
from marketplace.database.helpers.timeutils import utcnow

PURCHASE_ORDER_STATUSES = ("pending", "ordered", "received", "cancelled")


class PurchaseOrder(declarativeBase):
    """ORM model for the `purchase_order` table."""

    __tablename__ = "purchase_order"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    vendor_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), ForeignKey("vendor.id"), nullable=True)
    vendor_name: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    supplier_name: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    po_no: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, unique=True)
    payment_terms: Mapped[str] = mapped_column(VARCHAR(32), nullable=False, default="net_30")
    destination: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    supplier_currency: Mapped[str] = mapped_column(VARCHAR(8), nullable=False, default="USD")
    estimated_arrival: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    shipping_carrier: Mapped[str] = mapped_column(VARCHAR(128), nullable=False, default="")
    tracking_number: Mapped[str] = mapped_column(VARCHAR(128), nullable=False, default="")
    reference_number: Mapped[str] = mapped_column(VARCHAR(128), nullable=False, default="")
    received_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    tags: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    notes: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    products: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    products_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    calculations: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=dict)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, supplier_id: UUID, products: list, **fields):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.vendor_id = None
        self.vendor_name = ""
        self.supplier_name = ""
        self.po_no = generate_document_number("PO")
        self.payment_terms = "net_30"
        self.destination = ""
        self.supplier_currency = "USD"
        self.estimated_arrival = None
        self.shipping_carrier = ""
        self.tracking_number = ""
        self.reference_number = ""
        self.received_status = False
        self.received_at = None
        self.tags = []
        self.notes = ""
        self.products = list(products)
        self.calculations = {}
        self.status = "pending"
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)
        self.products_count = len(self.products)


@event.listens_for(PurchaseOrder, "before_insert")
@event.listens_for(PurchaseOrder, "before_update")
def _purchase_order_before_save(mapper, connection, target: PurchaseOrder) -> None:
    target.products_count = len(target.products or [])
    target.updated_at = utcnow()
