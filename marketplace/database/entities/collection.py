"""
Collection ORM Model
====================

Product collections (``collection`` table) and the ``collection_product``
association table.

Collections are either ``manual`` (membership curated by the supplier) or
``smart`` (membership computed from ``smart_conditions`` combined with
``smart_operator`` ``all``/``any``; see
:mod:`marketplace.database.core.smart_collections`). In both cases
membership is stored in ``collection_product``; deleting a row there removes
the product from the collection and the collection from the product at once.
"""

import uuid
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, TEXT, VARCHAR, Column, DateTime, ForeignKey, Table, Uuid, event
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.database.config.connection_engine import declarativeBase, metadata
from marketplace.database.helpers.text import slugify
from marketplace.database.helpers.timeutils import utcnow

COLLECTION_TYPES = ("manual", "smart")
SMART_OPERATORS = ("all", "any")

collection_product = Table(
    "collection_product",
    metadata,
    Column("collection_id", Uuid(as_uuid=True), ForeignKey("collection.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Uuid(as_uuid=True), ForeignKey("product.id", ondelete="CASCADE"), primary_key=True),
)
"""Many-to-many membership between collections and products."""


class Collection(declarativeBase):
    """
    ORM model for the `collection` table.

    Attributes
    ----------
    url_handle : str
        Globally unique slug generated from the title.
    collection_type : str
        ``manual`` or ``smart``.
    smart_operator : str
        ``all`` (every condition) or ``any`` (at least one).
    smart_conditions : list[dict]
        ``{"field", "operator", "value"}`` rules.
    status : str
        ``active`` (default), ``draft`` or ``archived`` (soft delete).
    """

    __tablename__ = "collection"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(VARCHAR(255), nullable=False)
    url_handle: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    collection_type: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="manual")
    collection_images: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    smart_operator: Mapped[str] = mapped_column(VARCHAR(8), nullable=False, default="all")
    smart_conditions: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    status: Mapped[str] = mapped_column(VARCHAR(16), nullable=False, default="active")
    page_title: Mapped[str] = mapped_column(VARCHAR(255), nullable=False, default="")
    meta_description: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    products = relationship("Product", secondary=collection_product, back_populates="collections")

    def __init__(self, supplier_id: UUID, title: str, url_handle: Optional[str] = None, **fields):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.title = title.strip()
        self.url_handle = url_handle or slugify(title, "collection")
        self.description = ""
        self.collection_type = "manual"
        self.collection_images = []
        self.smart_operator = "all"
        self.smart_conditions = []
        self.status = "active"
        self.page_title = ""
        self.meta_description = ""
        self.created_at = now
        self.updated_at = now
        for key, value in fields.items():
            setattr(self, key, value)

    def is_smart(self) -> bool:
        return self.collection_type == "smart"

    def __str__(self) -> str:
        return f"Collection: id:{self.id}, title: {self.title}, type: {self.collection_type}"


@event.listens_for(Collection, "before_update")
def _collection_before_update(mapper, connection, target: Collection) -> None:
    target.updated_at = utcnow()
