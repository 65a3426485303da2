"""
SupplierSiteBuilder DAO

One storefront configuration per supplier; fetch-or-create on first access.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.site_builder import SupplierSiteBuilder

logger = logging.getLogger("uvicorn")


class SiteBuilderDao:
    """Data Access Object (DAO) for SupplierSiteBuilder entities."""

    def fetchSite(self, session: Session, supplier_id: uuid.UUID) -> Optional[SupplierSiteBuilder]:
        try:
            return session.query(SupplierSiteBuilder).filter(SupplierSiteBuilder.supplier_id == supplier_id).first()
        except Exception as e:
            logger.error(f"Error in SiteBuilderDao.fetchSite. Error Message: {e}")
            raise e

    def fetchOrCreateSite(self, session: Session, supplier_id: uuid.UUID) -> SupplierSiteBuilder:
        try:
            site = self.fetchSite(session, supplier_id)
            if site is None:
                site = SupplierSiteBuilder(supplier_id=supplier_id)
                session.add(site)
                session.flush()
            return site
        except Exception as e:
            logger.error(f"Error in SiteBuilderDao.fetchOrCreateSite. Error Message: {e}")
            raise e

    def fetchPublishedSites(self, session: Session) -> List[SupplierSiteBuilder]:
        try:
            return (
                session.query(SupplierSiteBuilder)
                .filter(SupplierSiteBuilder.is_published.is_(True))
                .order_by(SupplierSiteBuilder.updated_at.desc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in SiteBuilderDao.fetchPublishedSites. Error Message: {e}")
            raise e
