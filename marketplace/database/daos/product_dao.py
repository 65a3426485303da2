"""
Product DAO

Purpose
-------
Data access for the `Product` entity:
- Create and fetch supplier products (scoped by ``supplier_id``)
- List/search non-archived products
- Public catalog queries over active products
- Slug lookups for the ``url_handle`` uniqueness check

Archived products are soft-deleted: every listing query excludes them.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from marketplace.database.entities.collection import Collection  # noqa: F401  (relationship target)
from marketplace.database.entities.product import Product

logger = logging.getLogger("uvicorn")


class ProductDao:
    """Data Access Object (DAO) for Product entities."""

    def createProduct(self, session: Session, product: Product) -> Product:
        try:
            session.add(product)
            session.flush()
            return product
        except Exception as e:
            logger.error(f"Error in ProductDao.createProduct. Error Message: {e}")
            raise e

    def fetchProductById(self, session: Session, product_id: uuid.UUID) -> Optional[Product]:
        try:
            return session.get(Product, product_id)
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchProductById. Error Message: {e}")
            raise e

    def fetchSupplierProduct(self, session: Session, supplier_id: uuid.UUID, product_id: uuid.UUID) -> Optional[Product]:
        """Fetch a product only if it belongs to ``supplier_id``."""
        try:
            return (
                session.query(Product)
                .filter(Product.id == product_id, Product.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchSupplierProduct. Error Message: {e}")
            raise e

    def fetchProductByHandle(self, session: Session, url_handle: str) -> Optional[Product]:
        try:
            return session.query(Product).filter(Product.url_handle == url_handle).first()
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchProductByHandle. Error Message: {e}")
            raise e

    def fetchProducts(self, session: Session, supplier_id: uuid.UUID, include_archived: bool = False) -> List[Product]:
        """Supplier products, newest first."""
        try:
            query = session.query(Product).filter(Product.supplier_id == supplier_id)
            if not include_archived:
                query = query.filter(Product.status != "archived")
            return query.order_by(Product.created_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchProducts. Error Message: {e}")
            raise e

    def fetchProductsByIds(self, session: Session, product_ids: Iterable[uuid.UUID], supplier_id: Optional[uuid.UUID] = None) -> List[Product]:
        try:
            ids = list(product_ids)
            if not ids:
                return []
            query = session.query(Product).filter(Product.id.in_(ids))
            if supplier_id is not None:
                query = query.filter(Product.supplier_id == supplier_id)
            return query.all()
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchProductsByIds. Error Message: {e}")
            raise e

    def searchProducts(self, session: Session, supplier_id: uuid.UUID, query_text: str) -> List[Product]:
        """Case-insensitive search over title, description, category, tags and slug."""
        try:
            pattern = f"%{query_text.strip()}%"
            return (
                session.query(Product)
                .filter(Product.supplier_id == supplier_id, Product.status != "archived")
                .filter(
                    or_(
                        Product.title.ilike(pattern),
                        Product.description.ilike(pattern),
                        Product.category.ilike(pattern),
                        Product.url_handle.ilike(pattern),
                        cast(Product.search_tags, String).ilike(pattern),
                    )
                )
                .order_by(Product.created_at.desc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in ProductDao.searchProducts. Error Message: {e}")
            raise e

    def fetchActiveProducts(
        self,
        session: Session,
        supplier_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Product]:
        """Active products for the public catalog, newest first."""
        try:
            query = self._active_query(session, supplier_id, search, category)
            query = query.order_by(Product.created_at.desc()).offset(offset)
            if limit:
                query = query.limit(limit)
            return query.all()
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchActiveProducts. Error Message: {e}")
            raise e

    def countActiveProducts(self, session: Session, supplier_id=None, search=None, category=None) -> int:
        try:
            return self._active_query(session, supplier_id, search, category).count()
        except Exception as e:
            logger.error(f"Error in ProductDao.countActiveProducts. Error Message: {e}")
            raise e

    def fetchAllProducts(self, session: Session, status: Optional[str] = None) -> List[Product]:
        """Platform-wide product listing for admins."""
        try:
            query = session.query(Product)
            if status:
                query = query.filter(Product.status == status)
            return query.order_by(Product.created_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in ProductDao.fetchAllProducts. Error Message: {e}")
            raise e

    def _active_query(self, session: Session, supplier_id, search, category):
        query = session.query(Product).filter(Product.status == "active")
        if supplier_id is not None:
            query = query.filter(Product.supplier_id == supplier_id)
        if category:
            query = query.filter(Product.category.ilike(category.strip()))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Product.title.ilike(pattern),
                    Product.description.ilike(pattern),
                    cast(Product.search_tags, String).ilike(pattern),
                )
            )
        return query
