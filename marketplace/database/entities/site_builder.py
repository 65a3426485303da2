"""
SupplierSiteBuilder ORM Model
=============================

One storefront configuration per supplier (``supplier_site_builder`` table).

- ``sections``: ordered blocks ``{type, position, title, content, image_url,
  collection_id, product_ids, images, styling}`` where ``type`` is one of
  ``SECTION_TYPES``
- ``hot_products``: ``[{product_id, position}]``
- ``hero_banners``: ``[{image_path, title, subtitle, button_text, button_link, position}]``
- ``theme``: ``{primary_color, secondary_color, font_family, layout_style}``
- ``is_published``: public storefront visibility
"""

import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, TEXT, Boolean, DateTime, ForeignKey, Uuid, event
from sqlalchemy.ext.mutable import MutableDict, MutableList
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.config.connection_engine import declarativeBase
from marketplace.database.helpers.timeutils import utcnow

SECTION_TYPES = ("banner", "collection", "products", "text", "gallery")
LAYOUT_STYLES = ("modern", "classic", "minimal")


def default_theme() -> dict:
    return {
        "primary_color": "#007bff",
        "secondary_color": "#6c757d",
        "font_family": "Arial, sans-serif",
        "layout_style": "modern",
    }


class SupplierSiteBuilder(declarativeBase):
    """ORM model for the `supplier_site_builder` table."""

    __tablename__ = "supplier_site_builder"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    supplier_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("app_user.id"), nullable=False, unique=True)
    sections: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    hot_products: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    about_us: Mapped[str] = mapped_column(TEXT, nullable=False, default="")
    hero_banners: Mapped[list] = mapped_column(MutableList.as_mutable(JSON), nullable=False, default=list)
    theme: Mapped[dict] = mapped_column(MutableDict.as_mutable(JSON), nullable=False, default=default_theme)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __init__(self, supplier_id: UUID):
        now = utcnow()
        self.id = uuid.uuid4()
        self.supplier_id = supplier_id
        self.sections = []
        self.hot_products = []
        self.about_us = ""
        self.hero_banners = []
        self.theme = default_theme()
        self.is_published = False
        self.created_at = now
        self.updated_at = now


@event.listens_for(SupplierSiteBuilder, "before_update")
def _site_before_update(mapper, connection, target: SupplierSiteBuilder) -> None:
    target.updated_at = utcnow()
