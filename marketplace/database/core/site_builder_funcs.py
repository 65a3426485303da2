"""
Storefront site builder: the supplier's editable configuration and the
published public view of it.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.core.serializers import collection_to_dict, product_card, site_to_dict
from marketplace.database.daos.collection_dao import CollectionDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.daos.site_builder_dao import SiteBuilderDao
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.site_builder import LAYOUT_STYLES, SECTION_TYPES, SupplierSiteBuilder
from marketplace.database.helpers.ids import to_uuid, to_uuid_list
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

UPLOAD_PREFIX = "/uploads/"
SITE_UPLOAD_PREFIX = "/uploads/site-builder/"
THEME_KEYS = ("primary_color", "secondary_color", "font_family", "layout_style")


def upload_path(path: str) -> str:
    """Paths outside ``/uploads/`` are taken as site-builder uploads."""
    if not path or path.startswith(UPLOAD_PREFIX):
        return path or ""
    return SITE_UPLOAD_PREFIX + path.replace("./", "", 1).lstrip("/")


def _position(entry: dict, index: int) -> int:
    position = entry.get("position", index)
    try:
        position = int(position)
    except (TypeError, ValueError):
        raise BadRequestError("Position must be a non-negative integer")
    if position < 0:
        raise BadRequestError("Position must be a non-negative integer")
    return position


def _owned_product_ids(session: Session, supplier_id: uuid.UUID, product_ids) -> List[str]:
    ids = to_uuid_list(product_ids)
    found = {p.id for p in ProductDao().fetchProductsByIds(session=session, product_ids=ids, supplier_id=supplier_id)}
    missing = [str(i) for i in ids if i not in found]
    if missing:
        raise BadRequestError(f"Products not found: {', '.join(missing)}")
    return [str(i) for i in ids]


def _build_sections(session: Session, supplier_id: uuid.UUID, sections: list) -> list:
    built = []
    for index, section in enumerate(sections):
        section_type = section.get("type")
        if section_type not in SECTION_TYPES:
            raise BadRequestError(f"Invalid section type: {section_type}")
        entry = {"type": section_type, "position": _position(section, index)}
        if section_type == "banner":
            entry["image_url"] = upload_path(section.get("image_url") or section.get("imageUrl") or "")
            entry["title"] = section.get("title", "")
        elif section_type == "collection":
            collection_id = section.get("collection_id")
            if not collection_id:
                raise BadRequestError("Collection section requires collection_id")
            collection = CollectionDao().fetchSupplierCollection(
                session=session, supplier_id=supplier_id, collection_id=to_uuid(collection_id)
            )
            if collection is None:
                raise BadRequestError(f"Collection not found: {collection_id}")
            entry["collection_id"] = str(collection.id)
            entry["title"] = section.get("title", "")
        elif section_type == "products":
            entry["product_ids"] = _owned_product_ids(session, supplier_id, section.get("product_ids") or [])
            entry["title"] = section.get("title", "")
        elif section_type == "text":
            entry["title"] = section.get("title", "")
            entry["content"] = section.get("content", "")
        else:
            entry["images"] = [upload_path(img) for img in section.get("images") or []]
        if section.get("styling"):
            entry["styling"] = dict(section["styling"])
        built.append(entry)
    return built


def _build_hot_products(session: Session, supplier_id: uuid.UUID, hot_products: list) -> list:
    built = []
    for index, hot in enumerate(hot_products):
        if isinstance(hot, dict):
            product_id = hot.get("product_id") or hot.get("id")
        else:
            product_id, hot = hot, {}
        if not product_id:
            raise BadRequestError("Hot product requires product_id")
        built.append({"product_id": _owned_product_ids(session, supplier_id, [product_id])[0], "position": _position(hot, index)})
    return built


def _build_hero_banners(banners: list) -> list:
    return [
        {
            "image_path": upload_path(banner.get("image_path") or banner.get("path") or ""),
            "title": banner.get("title", ""),
            "subtitle": banner.get("subtitle", ""),
            "button_text": banner.get("button_text", ""),
            "button_link": banner.get("button_link", ""),
            "position": _position(banner, index),
        }
        for index, banner in enumerate(banners)
    ]


def _merge_theme(site: SupplierSiteBuilder, theme: dict) -> None:
    updates = {k: v for k, v in theme.items() if k in THEME_KEYS}
    if "layout_style" in updates and updates["layout_style"] not in LAYOUT_STYLES:
        raise BadRequestError(f"Invalid layout style: {updates['layout_style']}")
    site.theme.update(updates)


def _expand(session: Session, site: SupplierSiteBuilder, active_only: bool) -> dict:
    """Resolve section and hot-product references into product/collection data."""
    data = site_to_dict(site)
    product_ids = {pid for s in data["sections"] for pid in s.get("product_ids", [])}
    product_ids.update(h["product_id"] for h in data["hot_products"])
    products = {
        str(p.id): p
        for p in ProductDao().fetchProductsByIds(session=session, product_ids=to_uuid_list(product_ids), supplier_id=site.supplier_id)
        if not active_only or p.status == "active"
    }
    collection_ids = [s["collection_id"] for s in data["sections"] if s.get("collection_id")]
    collections = {
        str(c.id): c
        for c in CollectionDao().fetchCollectionsByIds(session=session, collection_ids=to_uuid_list(collection_ids), supplier_id=site.supplier_id)
    }

    for section in data["sections"]:
        if section["type"] == "products":
            section["products_data"] = [product_card(products[pid]) for pid in section.get("product_ids", []) if pid in products]
        elif section["type"] == "collection":
            collection = collections.get(section.get("collection_id"))
            if collection is None or (active_only and collection.status == "archived"):
                section["collection_data"] = None
                continue
            collection_data = collection_to_dict(collection, include_products=True)
            collection_data["products"] = [p for p in collection_data["products"] if p["status"] == "active"][:20]
            section["collection_data"] = collection_data
    data["hot_products"] = [
        dict(product_card(products[h["product_id"]]), position=h["position"])
        for h in data["hot_products"]
        if h["product_id"] in products
    ]
    return data


@transactional
def get_site(session: Session, supplier_id: str) -> dict:
    """The supplier's configuration, created with defaults on first access."""
    site = SiteBuilderDao().fetchOrCreateSite(session=session, supplier_id=to_uuid(supplier_id))
    return {"message": "Site builder configuration retrieved successfully", "site_data": _expand(session, site, active_only=False)}


@transactional
def update_site(session: Session, supplier_id: str, fields: dict) -> dict:
    """
    Replace the parts of the configuration present in ``fields``.

    ``sections``, ``hot_products`` and ``hero_banners`` are replaced as whole
    lists; ``theme`` is merged key by key. Referenced products and collections
    must belong to the supplier.
    """
    supplier_id = to_uuid(supplier_id)
    site = SiteBuilderDao().fetchOrCreateSite(session=session, supplier_id=supplier_id)
    if fields.get("sections") is not None:
        site.sections = _build_sections(session, supplier_id, fields["sections"])
    if fields.get("hot_products") is not None:
        site.hot_products = _build_hot_products(session, supplier_id, fields["hot_products"])
    if fields.get("hero_banners") is not None:
        site.hero_banners = _build_hero_banners(fields["hero_banners"])
    if fields.get("about_us") is not None:
        site.about_us = fields["about_us"]
    if fields.get("theme"):
        _merge_theme(site, fields["theme"])
    if fields.get("is_published") is not None:
        site.is_published = bool(fields["is_published"])
    session.flush()
    logger.info(f"Site builder updated for supplier {supplier_id}")
    return {
        "message": "Site builder configuration updated successfully",
        "site_builder_id": str(site.id),
        "is_published": site.is_published,
    }


@transactional
def toggle_publish(session: Session, supplier_id: str, is_published: Optional[bool]) -> dict:
    if is_published is None:
        raise BadRequestError("is_published is required")
    site = SiteBuilderDao().fetchSite(session=session, supplier_id=to_uuid(supplier_id))
    if site is None:
        raise NotFoundError("Site builder configuration not found")
    site.is_published = bool(is_published)
    return {"message": f"Store {'published' if site.is_published else 'unpublished'} successfully", "is_published": site.is_published}


@transactional
def get_public_store(session: Session, supplier_identifier: str) -> dict:
    """Published storefront by supplier id or username, with active products only."""
    user_dao = UserDao()
    try:
        supplier = user_dao.fetchUserById(session=session, user_id=uuid.UUID(str(supplier_identifier)))
    except ValueError:
        supplier = user_dao.fetchUserByUsername(session=session, username=supplier_identifier)
    if supplier is None or "supplier" not in (supplier.access_roles or []):
        raise NotFoundError("Supplier not found with the provided username")

    site = SiteBuilderDao().fetchSite(session=session, supplier_id=supplier.id)
    if site is None or not site.is_published:
        raise NotFoundError("Store not found or not published for this supplier")

    data = _expand(session, site, active_only=True)
    store = {
        "store_info": {"supplier_id": str(supplier.id), "supplier_name": supplier.username, "supplier_email": supplier.email},
        "sections": data["sections"],
        "hot_products": data["hot_products"],
        "about_us": data["about_us"],
        "hero_banners": data["hero_banners"],
        "theme": data["theme"],
    }
    return {"message": "Store retrieved successfully", "store": store}


@transactional
def list_published_stores(session: Session) -> dict:
    sites = SiteBuilderDao().fetchPublishedSites(session=session)
    suppliers = {u.id: u for u in UserDao().fetchUsersByIds(session=session, user_ids=[s.supplier_id for s in sites])}
    stores = [
        {
            "supplier_id": str(site.supplier_id),
            "supplier_name": suppliers[site.supplier_id].username,
            "about_us": site.about_us,
            "theme": dict(site.theme or {}),
            "hero_banner": (site_to_dict(site)["hero_banners"] or [None])[0],
        }
        for site in sites
        if site.supplier_id in suppliers
    ]
    return {"message": "Stores retrieved successfully", "stores": stores}
