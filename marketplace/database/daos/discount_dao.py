"""
Discount DAO

Data access for `Discount`: create, scoped fetch, code lookup, filtered
listing and hard delete.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.discount import Discount

logger = logging.getLogger("uvicorn")


class DiscountDao:
    """Data Access Object (DAO) for Discount entities."""

    def createDiscount(self, session: Session, discount: Discount) -> Discount:
        try:
            session.add(discount)
            session.flush()
            return discount
        except Exception as e:
            logger.error(f"Error in DiscountDao.createDiscount. Error Message: {e}")
            raise e

    def fetchSupplierDiscount(self, session: Session, supplier_id: uuid.UUID, discount_id: uuid.UUID) -> Optional[Discount]:
        try:
            return (
                session.query(Discount)
                .filter(Discount.id == discount_id, Discount.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in DiscountDao.fetchSupplierDiscount. Error Message: {e}")
            raise e

    def fetchDiscountByCode(self, session: Session, supplier_id: uuid.UUID, code: str) -> Optional[Discount]:
        try:
            return (
                session.query(Discount)
                .filter(Discount.supplier_id == supplier_id, Discount.code == code.strip().upper())
                .first()
            )
        except Exception as e:
            logger.error(f"Error in DiscountDao.fetchDiscountByCode. Error Message: {e}")
            raise e

    def fetchDiscounts(
        self,
        session: Session,
        supplier_id: uuid.UUID,
        status: Optional[str] = None,
        discount_type: Optional[str] = None,
    ) -> List[Discount]:
        try:
            query = session.query(Discount).filter(Discount.supplier_id == supplier_id)
            if status:
                query = query.filter(Discount.status == status)
            if discount_type:
                query = query.filter(Discount.discount_type == discount_type)
            return query.order_by(Discount.created_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in DiscountDao.fetchDiscounts. Error Message: {e}")
            raise e

    def deleteDiscount(self, session: Session, discount: Discount) -> None:
        try:
            session.delete(discount)
            session.flush()
        except Exception as e:
            logger.error(f"Error in DiscountDao.deleteDiscount. Error Message: {e}")
            raise e
