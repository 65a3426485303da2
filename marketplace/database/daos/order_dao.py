"""
Order DAOs

Data access for both order models:

- `OrderDao`: legacy supplier-created orders (`Order`)
- `ClientOrderDao`: self-service client orders (`ClientOrder`)
- `PurchaseOrderDao`: stock purchases from vendors (`PurchaseOrder`)

Date-range arguments are inclusive at the start and exclusive at the end.
"""

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.client_order import ClientOrder
from marketplace.database.entities.order import Order
from marketplace.database.entities.purchase_order import PurchaseOrder

logger = logging.getLogger("uvicorn")


class OrderDao:
    """Data Access Object (DAO) for legacy Order entities."""

    def createOrder(self, session: Session, order: Order) -> Order:
        try:
            session.add(order)
            session.flush()
            return order
        except Exception as e:
            logger.error(f"Error in OrderDao.createOrder. Error Message: {e}")
            raise e

    def fetchSupplierOrder(self, session: Session, supplier_id: uuid.UUID, order_id: uuid.UUID) -> Optional[Order]:
        try:
            return session.query(Order).filter(Order.id == order_id, Order.supplier_id == supplier_id).first()
        except Exception as e:
            logger.error(f"Error in OrderDao.fetchSupplierOrder. Error Message: {e}")
            raise e

    def fetchOrders(
        self,
        session: Session,
        supplier_id: Optional[uuid.UUID] = None,
        statuses: Optional[Iterable[str]] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> List[Order]:
        """Orders newest first; ``supplier_id=None`` spans the whole platform."""
        try:
            query = session.query(Order)
            if supplier_id is not None:
                query = query.filter(Order.supplier_id == supplier_id)
            if statuses:
                query = query.filter(Order.status.in_(list(statuses)))
            if created_from is not None:
                query = query.filter(Order.created_at >= created_from)
            if created_to is not None:
                query = query.filter(Order.created_at < created_to)
            return query.order_by(Order.created_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in OrderDao.fetchOrders. Error Message: {e}")
            raise e

    def fetchSupplierOrderByNumber(self, session: Session, supplier_id: uuid.UUID, order_no: str) -> Optional[Order]:
        try:
            return session.query(Order).filter(Order.order_no == order_no, Order.supplier_id == supplier_id).first()
        except Exception as e:
            logger.error(f"Error in OrderDao.fetchSupplierOrderByNumber. Error Message: {e}")
            raise e


class ClientOrderDao:
    """Data Access Object (DAO) for ClientOrder entities."""

    def createClientOrder(self, session: Session, order: ClientOrder) -> ClientOrder:
        try:
            session.add(order)
            session.flush()
            return order
        except Exception as e:
            logger.error(f"Error in ClientOrderDao.createClientOrder. Error Message: {e}")
            raise e

    def fetchClientOrder(self, session: Session, order_id: uuid.UUID) -> Optional[ClientOrder]:
        try:
            return session.get(ClientOrder, order_id)
        except Exception as e:
            logger.error(f"Error in ClientOrderDao.fetchClientOrder. Error Message: {e}")
            raise e

    def fetchClientOrders(
        self,
        session: Session,
        client_id: Optional[uuid.UUID] = None,
        supplier_id: Optional[uuid.UUID] = None,
        statuses: Optional[Iterable[str]] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> List[ClientOrder]:
        try:
            query = session.query(ClientOrder)
            if client_id is not None:
                query = query.filter(ClientOrder.client_id == client_id)
            if supplier_id is not None:
                query = query.filter(ClientOrder.supplier_id == supplier_id)
            if statuses:
                query = query.filter(ClientOrder.status.in_(list(statuses)))
            if created_from is not None:
                query = query.filter(ClientOrder.placed_at >= created_from)
            if created_to is not None:
                query = query.filter(ClientOrder.placed_at < created_to)
            return query.order_by(ClientOrder.placed_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in ClientOrderDao.fetchClientOrders. Error Message: {e}")
            raise e


class PurchaseOrderDao:
    """Data Access Object (DAO) for PurchaseOrder entities."""

    def createPurchaseOrder(self, session: Session, purchase_order: PurchaseOrder) -> PurchaseOrder:
        try:
            session.add(purchase_order)
            session.flush()
            return purchase_order
        except Exception as e:
            logger.error(f"Error in PurchaseOrderDao.createPurchaseOrder. Error Message: {e}")
            raise e

    def fetchSupplierPurchaseOrder(self, session: Session, supplier_id: uuid.UUID, po_id: uuid.UUID) -> Optional[PurchaseOrder]:
        try:
            return (
                session.query(PurchaseOrder)
                .filter(PurchaseOrder.id == po_id, PurchaseOrder.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in PurchaseOrderDao.fetchSupplierPurchaseOrder. Error Message: {e}")
            raise e

    def fetchPurchaseOrders(self, session: Session, supplier_id: uuid.UUID) -> List[PurchaseOrder]:
        try:
            return (
                session.query(PurchaseOrder)
                .filter(PurchaseOrder.supplier_id == supplier_id, PurchaseOrder.status != "cancelled")
                .order_by(PurchaseOrder.created_at.desc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in PurchaseOrderDao.fetchPurchaseOrders. Error Message: {e}")
            raise e

    def fetchSupplierPurchaseOrderByNumber(self, session: Session, supplier_id: uuid.UUID, po_no: str) -> Optional[PurchaseOrder]:
        try:
            return (
                session.query(PurchaseOrder)
                .filter(PurchaseOrder.po_no == po_no, PurchaseOrder.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in PurchaseOrderDao.fetchSupplierPurchaseOrderByNumber. Error Message: {e}")
            raise e
