"""
Product ORM Model
=================

Supplier catalog items (``product`` table).

Save hook
~~~~~~~~~
On every insert/update the product gets a fresh ``updated_at``, a
``url_handle`` slug generated from the title when none is set, and when both
``price`` and ``cost_per_item`` are positive::

    profit = price - cost_per_item
    margin = profit / price * 100

Collections membership lives in the ``collection_product`` association table
(see :mod:`marketplace.database.entities.collection`), so
``Product.collections`` and ``Collection.products`` are one relation.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Boolean, DateTime, Float, ForeignKey, Integer, Uuid, event
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.text import slugify
from marketplace.database.helpers.timeutils import utcnow

PRODUCT_STATUSES = ("active", "draft", "archived")


class Product(declarativeBase):
    """
    ORM model for the `product` table.

    Attributes
    ----------
    supplier_id : UUID
        Owning supplier (FK → app_user.id).
    url_handle : str
        Globally unique slug.
    media : list[str]
        Stored upload paths.
    status : str
        ``active``, ``draft`` (default) or ``archived`` (soft delete).
    quantity, min_qty : int
        Stock on hand and the low-stock threshold (default 10).
    track_quantity : bool
        Stock is decremented/restored by orders only when true.
    search_vendor : str | None
        Vendor id or free-text vendor name.
    search_tags : list[str]
        Free-form tags used by search and smart collections.
    """

    __tablename__ = "product"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    url_handle: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    category: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    media: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    compare_at_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    tax: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cost_per_item: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    profit: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    margin: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="draft")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    variant_option: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    variants: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    physical_product: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    track_quantity: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    continue_out_of_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    units: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="kg")
    region: Mapped[str] = mapped_column(VARCHAR(128), nullable=False, default="")
    hs_code: Mapped[str] = mapped_column(VARCHAR(64), nullable=False, default="")
    address: Mapped[str] = mapped_column(TEXT, nullable=False, default="")

    search_vendor: Mapped[Optional[str]] = mapped_column(VARCHAR(255), nullable=True)
    search_tags: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    page_title: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    meta_description: Mapped[str] = mapped_column(TEXT, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    collections = relationship("Collection", secondary="collection_product", back_populates="products")

    def __init__(self, supplier_id: UUID, title: str, **fields):
        """
        Initialize a new Product.

        Parameters
        ----------
        supplier_id : UUID
            Owning supplier.
        title : str
            Product title; also the slug source when ``url_handle`` is omitted.
        **fields
            Any other column value (``price``, ``quantity``, ``media`` ...).
        """
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.title = title.strip()
        self.description = ""
        self.category = ""
        self.media = []
        self.price = 0
        self.compare_at_price = 0
        self.tax = False
        self.cost_per_item = 0
        self.profit = 0
        self.margin = 0
        self.status = "draft"
        self.quantity = 0
        self.min_qty = 10
        self.variant_option = False
        self.variants = []
        self.physical_product = True
        self.track_quantity = True
        self.continue_out_of_stock = False
        self.weight = 0
        self.units = "kg"
        self.region = ""
        self.hs_code = ""
        self.address = ""
        self.search_vendor = None
        self.search_tags = []
        self.page_title = ""
        self.meta_description = ""
        self.url_handle = None
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)
        self.apply_derived_fields()

    def apply_derived_fields(self) -> None:
        """Fill the slug and recompute profit/margin."""
        if not self.url_handle:
            self.url_handle = slugify(self.title, "product")
        price = self.price or 0
        cost = self.cost_per_item or 0
        if price > 0 and cost > 0:
            self.profit = price - cost
            self.margin = self.profit / price * 100

    def is_low_stock(self) -> bool:
        return (self.quantity or 0) < (self.min_qty or 0)

    def __str__(self) -> str:
        return f"Product: id:{self.id}, title: {self.title}, status: {self.status}"


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _product_before_save(mapper, connection, target: Product) -> None:
    target.apply_derived_fields()
    target.updated_at = utcnow()
