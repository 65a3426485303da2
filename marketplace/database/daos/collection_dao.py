"""
Collection DAO

Data access for `Collection`. Membership changes go through the
``Collection.products`` relationship, which writes the single
``collection_product`` association table.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.database.entities.collection import Collection
from marketplace.database.entities.product import Product  # noqa: F401  (relationship target)

logger = logging.getLogger("uvicorn")


class CollectionDao:
    """Data Access Object (DAO) for Collection entities."""

    def createCollection(self, session: Session, collection: Collection) -> Collection:
        try:
            session.add(collection)
            session.flush()
            return collection
        except Exception as e:
            logger.error(f"Error in CollectionDao.createCollection. Error Message: {e}")
            raise e

    def fetchSupplierCollection(self, session: Session, supplier_id: uuid.UUID, collection_id: uuid.UUID) -> Optional[Collection]:
        try:
            return (
                session.query(Collection)
                .filter(Collection.id == collection_id, Collection.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in CollectionDao.fetchSupplierCollection. Error Message: {e}")
            raise e

    def fetchCollectionByHandle(self, session: Session, url_handle: str) -> Optional[Collection]:
        try:
            return session.query(Collection).filter(Collection.url_handle == url_handle).first()
        except Exception as e:
            logger.error(f"Error in CollectionDao.fetchCollectionByHandle. Error Message: {e}")
            raise e

    def fetchCollections(self, session: Session, supplier_id: uuid.UUID, include_archived: bool = False) -> List[Collection]:
        try:
            query = session.query(Collection).filter(Collection.supplier_id == supplier_id)
            if not include_archived:
                query = query.filter(Collection.status != "archived")
            return query.order_by(Collection.created_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in CollectionDao.fetchCollections. Error Message: {e}")
            raise e

    def fetchSmartCollections(self, session: Session, supplier_id: uuid.UUID) -> List[Collection]:
        try:
            return (
                session.query(Collection)
                .filter(
                    Collection.supplier_id == supplier_id,
                    Collection.collection_type == "smart",
                    Collection.status != "archived",
                )
                .all()
            )
        except Exception as e:
            logger.error(f"Error in CollectionDao.fetchSmartCollections. Error Message: {e}")
            raise e

    def fetchCollectionsByIds(self, session: Session, collection_ids: List[uuid.UUID], supplier_id: Optional[uuid.UUID] = None) -> List[Collection]:
        try:
            if not collection_ids:
                return []
            query = session.query(Collection).filter(Collection.id.in_(collection_ids))
            if supplier_id is not None:
                query = query.filter(Collection.supplier_id == supplier_id)
            return query.all()
        except Exception as e:
            logger.error(f"Error in CollectionDao.fetchCollectionsByIds. Error Message: {e}")
            raise e

    def searchCollections(self, session: Session, supplier_id: uuid.UUID, query_text: str) -> List[Collection]:
        try:
            pattern = f"%{query_text.strip()}%"
            return (
                session.query(Collection)
                .filter(Collection.supplier_id == supplier_id, Collection.status != "archived")
                .filter(
                    or_(
                        Collection.title.ilike(pattern),
                        Collection.description.ilike(pattern),
                        Collection.url_handle.ilike(pattern),
                    )
                )
                .order_by(Collection.created_at.desc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in CollectionDao.searchCollections. Error Message: {e}")
            raise e
