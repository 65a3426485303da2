"""
Customer & Vendor DAOs

Purpose
-------
Data access for the two supplier contact books. Both are soft deleted with
``status = "deleted"`` and listings hide deleted rows.

Design
------
- Methods expect an active SQLAlchemy `Session` (normally injected by
  ``@transactional``) and never commit.
- Lookups that take a ``supplier_id`` never return another supplier's row.

Error Handling
--------------
- Each method catches generic `Exception`, logs a message, and re-raises.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.entities.customer import Customer
from marketplace.database.entities.vendor import Vendor

logger = logging.getLogger("uvicorn")


class CustomerDao:
    """Data Access Object (DAO) for Customer entities."""

    def createCustomer(self, session: Session, customer: Customer) -> Customer:
        """
        Stage a new customer and flush it.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        customer : Customer
            Unsaved customer entity.

        Returns
        -------
        Customer
            The flushed customer.
        """
        try:
            session.add(customer)
            session.flush()
            return customer
        except Exception as e:
            logger.error(f"Error in CustomerDao.createCustomer. Error Message: {e}")
            raise e

    def fetchSupplierCustomer(self, session: Session, supplier_id: uuid.UUID, customer_id: uuid.UUID) -> Optional[Customer]:
        """
        Fetch one customer owned by a supplier.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        supplier_id : uuid.UUID
            Owning supplier.
        customer_id : uuid.UUID
            Customer id.

        Returns
        -------
        Optional[Customer]
            The customer, including a soft-deleted one, or None when it does
            not exist or belongs to another supplier.
        """
        try:
            return (
                session.query(Customer)
                .filter(Customer.id == customer_id, Customer.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in CustomerDao.fetchSupplierCustomer. Error Message: {e}")
            raise e

    def fetchCustomerByEmail(self, session: Session, supplier_id: uuid.UUID, email: str) -> Optional[Customer]:
        """
        Find a supplier's live customer by email.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        supplier_id : uuid.UUID
            Owning supplier.
        email : str
            Compared after trimming and lowercasing.

        Returns
        -------
        Optional[Customer]
            The matching non-deleted customer, or None.
        """
        try:
            return (
                session.query(Customer)
                .filter(Customer.supplier_id == supplier_id, Customer.email == email.strip().lower())
                .filter(Customer.status != "deleted")
                .first()
            )
        except Exception as e:
            logger.error(f"Error in CustomerDao.fetchCustomerByEmail. Error Message: {e}")
            raise e

    def fetchCustomers(self, session: Session, supplier_id: uuid.UUID) -> List[Customer]:
        """
        List a supplier's live customers.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        supplier_id : uuid.UUID
            Owning supplier.

        Returns
        -------
        List[Customer]
            Non-deleted customers, newest first.
        """
        try:
            return (
                session.query(Customer)
                .filter(Customer.supplier_id == supplier_id, Customer.status != "deleted")
                .order_by(Customer.created_at.desc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in CustomerDao.fetchCustomers. Error Message: {e}")
            raise e

    def fetchCustomersByIds(self, session: Session, customer_ids: List[uuid.UUID]) -> List[Customer]:
        """
        Fetch customers by id regardless of owner.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        customer_ids : List[uuid.UUID]
            Ids to look up; an empty list returns an empty list.

        Returns
        -------
        List[Customer]
            The customers found; callers check ``supplier_id`` themselves.
        """
        try:
            if not customer_ids:
                return []
            return session.query(Customer).filter(Customer.id.in_(customer_ids)).all()
        except Exception as e:
            logger.error(f"Error in CustomerDao.fetchCustomersByIds. Error Message: {e}")
            raise e


class VendorDao:
    """Data Access Object (DAO) for Vendor entities."""

    def createVendor(self, session: Session, vendor: Vendor) -> Vendor:
        """
        Stage a new vendor and flush it.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        vendor : Vendor
            Unsaved vendor entity.

        Returns
        -------
        Vendor
            The flushed vendor.
        """
        try:
            session.add(vendor)
            session.flush()
            return vendor
        except Exception as e:
            logger.error(f"Error in VendorDao.createVendor. Error Message: {e}")
            raise e

    def fetchSupplierVendor(self, session: Session, supplier_id: uuid.UUID, vendor_id: uuid.UUID) -> Optional[Vendor]:
        """
        Fetch one vendor owned by a supplier.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        supplier_id : uuid.UUID
            Owning supplier.
        vendor_id : uuid.UUID
            Vendor id.

        Returns
        -------
        Optional[Vendor]
            The vendor, including a soft-deleted one, or None.
        """
        try:
            return (
                session.query(Vendor)
                .filter(Vendor.id == vendor_id, Vendor.supplier_id == supplier_id)
                .first()
            )
        except Exception as e:
            logger.error(f"Error in VendorDao.fetchSupplierVendor. Error Message: {e}")
            raise e

    def fetchVendors(self, session: Session, supplier_id: uuid.UUID) -> List[Vendor]:
        """
        List a supplier's live vendors.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        supplier_id : uuid.UUID
            Owning supplier.

        Returns
        -------
        List[Vendor]
            Non-deleted vendors, newest first.
        """
        try:
            return (
                session.query(Vendor)
                .filter(Vendor.supplier_id == supplier_id, Vendor.status != "deleted")
                .order_by(Vendor.created_at.desc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in VendorDao.fetchVendors. Error Message: {e}")
            raise e
