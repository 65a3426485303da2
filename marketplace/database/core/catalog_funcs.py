"""
Service-layer operations for the supplier catalog (products and collections)
and the public product catalog.

Product <-> collection membership is the ``collection_product`` association,
so assigning ``product.collections`` or ``collection.products`` keeps both
sides in agreement. Smart collection membership is recomputed here whenever a
smart collection is saved or one of the supplier's products changes.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.core.serializers import collection_to_dict, product_card, product_to_dict
from marketplace.database.core.smart_collections import matching_products, validate_conditions
from marketplace.database.daos.collection_dao import CollectionDao
from marketplace.database.daos.contact_dao import VendorDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.entities.collection import COLLECTION_TYPES, Collection
from marketplace.database.entities.product import PRODUCT_STATUSES, Product
from marketplace.database.helpers.ids import to_uuid, to_uuid_list
from marketplace.database.helpers.text import slugify
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

PRODUCT_HANDLE_TAKEN = "URL handle already in use. Please use a different product title or provide a custom URL handle."
COLLECTION_HANDLE_TAKEN = "URL handle already in use. Please use a different collection title."

PRODUCT_FIELDS = (
    "title", "description", "category", "price", "compare_at_price", "tax", "cost_per_item",
    "status", "quantity", "min_qty", "variant_option", "variants", "physical_product",
    "track_quantity", "continue_out_of_stock", "weight", "units", "region", "hs_code",
    "address", "search_vendor", "search_tags", "page_title", "meta_description",
)
COLLECTION_FIELDS = ("title", "description", "status", "page_title", "meta_description")


def _vendor_names(session: Session, supplier_id: uuid.UUID) -> dict:
    return {str(v.id): v.vendor_name for v in VendorDao().fetchVendors(session=session, supplier_id=supplier_id)}


def refresh_smart_collections(session: Session, supplier_id: uuid.UUID, collections: Optional[List[Collection]] = None) -> None:
    """Recompute membership of the supplier's smart collections from their rules."""
    collections = collections if collections is not None else CollectionDao().fetchSmartCollections(session=session, supplier_id=supplier_id)
    if not collections:
        return
    products = ProductDao().fetchProducts(session=session, supplier_id=supplier_id)
    vendor_names = _vendor_names(session, supplier_id)
    for collection in collections:
        collection.products = matching_products(products, collection.smart_operator, list(collection.smart_conditions or []), vendor_names)
    session.flush()


def _manual_collections(session: Session, supplier_id: uuid.UUID, collection_ids) -> List[Collection]:
    ids = to_uuid_list(collection_ids)
    collections = CollectionDao().fetchCollectionsByIds(session=session, collection_ids=ids, supplier_id=supplier_id)
    return [c for c in collections if not c.is_smart() and c.status != "archived"]


def _apply_product_fields(product: Product, fields: dict) -> None:
    for key in PRODUCT_FIELDS:
        if key in fields and fields[key] is not None:
            setattr(product, key, fields[key])
    if product.status not in PRODUCT_STATUSES:
        raise BadRequestError(f"Invalid product status: {product.status}")
    if (product.price or 0) < 0 or (product.quantity or 0) < 0:
        raise BadRequestError("Price and quantity cannot be negative")


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@transactional
def list_products(session: Session, supplier_id: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    products = ProductDao().fetchProducts(session=session, supplier_id=supplier_id)
    vendor_names = _vendor_names(session, supplier_id)
    return {
        "message": "Products retrieved successfully",
        "products_list": [product_to_dict(p, vendor_names.get(p.search_vendor or "", "")) for p in products],
    }


@transactional
def get_product(session: Session, supplier_id: str, product_id: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    product = ProductDao().fetchSupplierProduct(session=session, supplier_id=supplier_id, product_id=to_uuid(product_id))
    if product is None:
        raise NotFoundError("Product not found")
    vendor_names = _vendor_names(session, supplier_id)
    return {"message": "Product retrieved successfully", "product": product_to_dict(product, vendor_names.get(product.search_vendor or "", ""))}


@transactional
def create_product(session: Session, supplier_id: str, fields: dict, media: Optional[List[str]] = None) -> dict:
    """
    Create a product, attach it to manual collections and refresh smart ones.

    Parameters
    ----------
    fields : dict
        Validated product fields; ``search_collection`` lists manual
        collection ids, ``url_handle`` overrides the generated slug.
    media : list[str] | None
        Stored upload paths, appended after any ``media`` already in ``fields``.

    Raises
    ------
    BadRequestError
        Missing title or a slug already in use.
    """
    product_dao = ProductDao()
    supplier_id = to_uuid(supplier_id)
    title = (fields.get("title") or "").strip()
    if not title:
        raise BadRequestError("Product title is required")
    url_handle = fields.get("url_handle") or slugify(title, "product")
    if product_dao.fetchProductByHandle(session=session, url_handle=url_handle):
        raise BadRequestError(PRODUCT_HANDLE_TAKEN)

    product = Product(supplier_id=supplier_id, title=title, url_handle=url_handle)
    _apply_product_fields(product, fields)
    product.media = list(fields.get("media") or []) + list(media or [])
    if not product.page_title:
        product.page_title = title
    if not product.meta_description:
        product.meta_description = (product.description or "")[:160]
    product.collections = _manual_collections(session, supplier_id, fields.get("search_collection"))
    product_dao.createProduct(session=session, product=product)
    refresh_smart_collections(session, supplier_id)
    logger.info(f"Product {product.id} created by supplier {supplier_id}")
    return {"message": "Product created successfully", "product": product_to_dict(product)}


@transactional
def update_product(session: Session, supplier_id: str, product_id: str, fields: dict, media: Optional[List[str]] = None) -> dict:
    product_dao = ProductDao()
    supplier_id = to_uuid(supplier_id)
    product = product_dao.fetchSupplierProduct(session=session, supplier_id=supplier_id, product_id=to_uuid(product_id))
    if product is None:
        raise NotFoundError("Product not found")

    new_handle = fields.get("url_handle")
    if new_handle is None and fields.get("title") and fields["title"].strip() != product.title:
        new_handle = slugify(fields["title"], "product")
    if new_handle and new_handle != product.url_handle:
        existing = product_dao.fetchProductByHandle(session=session, url_handle=new_handle)
        if existing is not None and existing.id != product.id:
            raise BadRequestError(PRODUCT_HANDLE_TAKEN)
        product.url_handle = new_handle

    _apply_product_fields(product, fields)
    if "media" in fields or media:
        base = fields["media"] if fields.get("media") is not None else list(product.media or [])
        product.media = list(base) + list(media or [])
    if "search_collection" in fields:
        smart = [c for c in product.collections if c.is_smart()]
        product.collections = smart + _manual_collections(session, supplier_id, fields.get("search_collection"))
    product.apply_derived_fields()
    session.flush()
    refresh_smart_collections(session, supplier_id)
    vendor_names = _vendor_names(session, supplier_id)
    return {"message": "Product updated successfully", "product": product_to_dict(product, vendor_names.get(product.search_vendor or "", ""))}


@transactional
def delete_product(session: Session, supplier_id: str, product_id: str) -> dict:
    """Archive a product and drop it from every collection."""
    supplier_id = to_uuid(supplier_id)
    product = ProductDao().fetchSupplierProduct(session=session, supplier_id=supplier_id, product_id=to_uuid(product_id))
    if product is None:
        raise NotFoundError("Product not found")
    product.status = "archived"
    product.collections = []
    session.flush()
    refresh_smart_collections(session, supplier_id)
    return {"message": "Product deleted successfully", "product_id": str(product.id)}


@transactional
def search_products(session: Session, supplier_id: str, query: str) -> dict:
    if not query or not query.strip():
        raise BadRequestError("Search query is required")
    products = ProductDao().searchProducts(session=session, supplier_id=to_uuid(supplier_id), query_text=query)
    return {"message": "Products retrieved successfully", "products_list": [product_to_dict(p) for p in products]}


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def _apply_collection_rules(session: Session, collection: Collection, fields: dict) -> None:
    collection_type = fields.get("collection_type") or collection.collection_type
    if collection_type not in COLLECTION_TYPES:
        raise BadRequestError(f"Invalid collection type: {collection_type}")
    collection.collection_type = collection_type
    if collection.is_smart():
        operator = fields.get("smart_operator") or collection.smart_operator or "all"
        conditions = fields["smart_conditions"] if fields.get("smart_conditions") is not None else list(collection.smart_conditions or [])
        collection.smart_operator = operator
        collection.smart_conditions = validate_conditions(operator, conditions)
        refresh_smart_collections(session, collection.supplier_id, [collection])
    elif "product_list" in fields:
        ids = to_uuid_list(fields.get("product_list"))
        products = ProductDao().fetchProductsByIds(session=session, product_ids=ids, supplier_id=collection.supplier_id)
        collection.products = [p for p in products if p.status != "archived"]


@transactional
def list_collections(session: Session, supplier_id: str) -> dict:
    collections = CollectionDao().fetchCollections(session=session, supplier_id=to_uuid(supplier_id))
    return {"message": "Collections retrieved successfully", "collections_list": [collection_to_dict(c) for c in collections]}


@transactional
def get_collection(session: Session, supplier_id: str, collection_id: str) -> dict:
    collection = CollectionDao().fetchSupplierCollection(session=session, supplier_id=to_uuid(supplier_id), collection_id=to_uuid(collection_id))
    if collection is None:
        raise NotFoundError("Collection not found")
    return {"message": "Collection retrieved successfully", "collection": collection_to_dict(collection, include_products=True)}


@transactional
def create_collection(session: Session, supplier_id: str, fields: dict, images: Optional[List[str]] = None) -> dict:
    """
    Create a manual or smart collection.

    Manual collections take their members from ``product_list``; smart ones
    from ``smart_operator`` + ``smart_conditions``.
    """
    collection_dao = CollectionDao()
    supplier_id = to_uuid(supplier_id)
    title = (fields.get("title") or "").strip()
    if not title:
        raise BadRequestError("Collection title is required")
    url_handle = fields.get("url_handle") or slugify(title, "collection")
    if collection_dao.fetchCollectionByHandle(session=session, url_handle=url_handle):
        raise BadRequestError(COLLECTION_HANDLE_TAKEN)

    collection = Collection(supplier_id=supplier_id, title=title, url_handle=url_handle)
    for key in COLLECTION_FIELDS:
        if fields.get(key) is not None:
            setattr(collection, key, fields[key])
    collection.collection_images = list(fields.get("collection_images") or []) + list(images or [])
    if not collection.page_title:
        collection.page_title = title
    collection_dao.createCollection(session=session, collection=collection)
    _apply_collection_rules(session, collection, fields)
    return {"message": "Collection created successfully", "collection": collection_to_dict(collection, include_products=True)}


@transactional
def update_collection(session: Session, supplier_id: str, collection_id: str, fields: dict, images: Optional[List[str]] = None) -> dict:
    collection_dao = CollectionDao()
    collection = collection_dao.fetchSupplierCollection(session=session, supplier_id=to_uuid(supplier_id), collection_id=to_uuid(collection_id))
    if collection is None:
        raise NotFoundError("Collection not found")

    new_handle = fields.get("url_handle")
    if new_handle is None and fields.get("title") and fields["title"].strip() != collection.title:
        new_handle = slugify(fields["title"], "collection")
    if new_handle and new_handle != collection.url_handle:
        existing = collection_dao.fetchCollectionByHandle(session=session, url_handle=new_handle)
        if existing is not None and existing.id != collection.id:
            raise BadRequestError(COLLECTION_HANDLE_TAKEN)
        collection.url_handle = new_handle

    for key in COLLECTION_FIELDS:
        if fields.get(key) is not None:
            setattr(collection, key, fields[key] if key != "title" else fields[key].strip())
    if "collection_images" in fields or images:
        base = fields["collection_images"] if fields.get("collection_images") is not None else list(collection.collection_images or [])
        collection.collection_images = list(base) + list(images or [])
    _apply_collection_rules(session, collection, fields)
    session.flush()
    return {"message": "Collection updated successfully", "collection": collection_to_dict(collection, include_products=True)}


@transactional
def delete_collection(session: Session, supplier_id: str, collection_id: str) -> dict:
    collection = CollectionDao().fetchSupplierCollection(session=session, supplier_id=to_uuid(supplier_id), collection_id=to_uuid(collection_id))
    if collection is None:
        raise NotFoundError("Collection not found")
    collection.status = "archived"
    collection.products = []
    return {"message": "Collection deleted successfully", "collection_id": str(collection.id)}


@transactional
def search_collections(session: Session, supplier_id: str, query: str) -> dict:
    if not query or not query.strip():
        raise BadRequestError("Search query is required")
    collections = CollectionDao().searchCollections(session=session, supplier_id=to_uuid(supplier_id), query_text=query)
    return {"message": "Collections retrieved successfully", "collections_list": [collection_to_dict(c) for c in collections]}


# ---------------------------------------------------------------------------
# Public catalog
# ---------------------------------------------------------------------------


@transactional
def browse_products(session: Session, search: Optional[str] = None, category: Optional[str] = None, supplier_id: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
    """Paginated active products across all suppliers."""
    product_dao = ProductDao()
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 20), 1), 100)
    supplier = to_uuid(supplier_id) if supplier_id else None
    products = product_dao.fetchActiveProducts(
        session=session, supplier_id=supplier, search=search, category=category, limit=limit, offset=(page - 1) * limit
    )
    total = product_dao.countActiveProducts(session=session, supplier_id=supplier, search=search, category=category)
    return {
        "products": [product_card(p) for p in products],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
    }


@transactional
def get_public_product(session: Session, url_handle: str) -> dict:
    product = ProductDao().fetchProductByHandle(session=session, url_handle=url_handle)
    if product is None or product.status != "active":
        raise NotFoundError("Product not found")
    data = product_to_dict(product)
    data.pop("cost_per_item", None)
    data.pop("profit", None)
    data.pop("margin", None)
    return {"product": data}
