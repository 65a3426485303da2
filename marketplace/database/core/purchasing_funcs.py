"""
Service-layer operations for the supplier's contacts and stock: vendors,
purchase orders, customers and the inventory view.

Vendors and customers are soft deleted (``status = "deleted"``); purchase
orders are soft deleted by cancelling them.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.core.serializers import customer_to_dict, purchase_order_to_dict, vendor_to_dict
from marketplace.database.daos.contact_dao import CustomerDao, VendorDao
from marketplace.database.daos.order_dao import OrderDao, PurchaseOrderDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.entities.customer import CONTACT_STATUSES, Customer
from marketplace.database.entities.purchase_order import PURCHASE_ORDER_STATUSES, PurchaseOrder
from marketplace.database.entities.vendor import Vendor
from marketplace.database.helpers.ids import to_uuid, to_uuid_or_none
from marketplace.database.helpers.timeutils import parse_datetime, utcnow
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, InvalidIdError, NotFoundError

logger = logging.getLogger("uvicorn")

VENDOR_FIELDS = ("first_name", "last_name", "email", "phone", "company", "address", "apartment", "city", "postal_code", "country", "status")
CUSTOMER_FIELDS = (
    "first_name", "last_name", "language", "email", "phone_number", "email_subscribe",
    "msg_subscribe", "default_address", "notes", "tags", "status",
)
PURCHASE_ORDER_FIELDS = (
    "supplier_name", "payment_terms", "destination", "supplier_currency", "shipping_carrier",
    "tracking_number", "reference_number", "tags", "notes", "status",
)


def _set_fields(entity, fields: dict, names) -> None:
    for key in names:
        if fields.get(key) is not None:
            value = fields[key]
            setattr(entity, key, value.strip() if isinstance(value, str) and key in ("first_name", "last_name", "email") else value)


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------


def _vendor(session: Session, supplier_id: uuid.UUID, vendor_id) -> Vendor:
    if not vendor_id:
        raise BadRequestError("Vendor ID is required")
    vendor = VendorDao().fetchSupplierVendor(session=session, supplier_id=supplier_id, vendor_id=to_uuid(vendor_id))
    if vendor is None or vendor.status == "deleted":
        raise NotFoundError("Vendor not found")
    return vendor


def _vendor_email_taken(session: Session, supplier_id: uuid.UUID, email: str, exclude_id=None) -> bool:
    email = (email or "").strip().lower()
    return any(v.email.lower() == email and v.id != exclude_id for v in VendorDao().fetchVendors(session=session, supplier_id=supplier_id))


@transactional
def list_vendors(session: Session, supplier_id: str) -> dict:
    vendors = VendorDao().fetchVendors(session=session, supplier_id=to_uuid(supplier_id))
    return {"message": "Vendors retrieved successfully", "vendors": [vendor_to_dict(v) for v in vendors]}


@transactional
def get_vendor(session: Session, supplier_id: str, vendor_id: str) -> dict:
    return {"message": "Vendor retrieved successfully", "vendor": vendor_to_dict(_vendor(session, to_uuid(supplier_id), vendor_id))}


@transactional
def create_vendor(session: Session, supplier_id: str, fields: dict) -> dict:
    supplier_id = to_uuid(supplier_id)
    if not fields.get("first_name") or not fields.get("last_name"):
        raise BadRequestError("First name and last name are required")
    if not fields.get("email"):
        raise BadRequestError("Email is required")
    if _vendor_email_taken(session, supplier_id, fields["email"]):
        raise BadRequestError("Vendor with this email already exists")
    vendor = Vendor(supplier_id=supplier_id, first_name=fields["first_name"])
    _set_fields(vendor, fields, VENDOR_FIELDS)
    VendorDao().createVendor(session=session, vendor=vendor)
    return {"message": "Vendor created successfully", "vendor": vendor_to_dict(vendor)}


@transactional
def update_vendor(session: Session, supplier_id: str, vendor_id: str, fields: dict) -> dict:
    supplier_id = to_uuid(supplier_id)
    vendor = _vendor(session, supplier_id, vendor_id)
    if fields.get("email") and _vendor_email_taken(session, supplier_id, fields["email"], exclude_id=vendor.id):
        raise BadRequestError("Vendor with this email already exists")
    if fields.get("status") is not None and fields["status"] not in CONTACT_STATUSES:
        raise BadRequestError(f"Invalid vendor status: {fields['status']}")
    _set_fields(vendor, fields, VENDOR_FIELDS)
    return {"message": "Vendor updated successfully", "vendor": vendor_to_dict(vendor)}


@transactional
def delete_vendor(session: Session, supplier_id: str, vendor_id: str) -> dict:
    vendor = _vendor(session, to_uuid(supplier_id), vendor_id)
    vendor.status = "deleted"
    return {"message": "Vendor deleted successfully"}


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


def _resolve_vendor(session: Session, supplier_id: uuid.UUID, vendor_ref: str):
    """
    Resolve a vendor from an id or a name.

    Returns ``(vendor_id, vendor_name)``; an unknown name is kept as free text.
    """
    vendor_dao = VendorDao()
    try:
        vendor_uuid = to_uuid(vendor_ref)
    except InvalidIdError:
        vendor_uuid = None
    if vendor_uuid is not None:
        vendor = vendor_dao.fetchSupplierVendor(session=session, supplier_id=supplier_id, vendor_id=vendor_uuid)
        if vendor is None or vendor.status == "deleted":
            raise NotFoundError("Vendor not found")
        return vendor.id, vendor.vendor_name
    wanted = vendor_ref.strip().lower()
    for vendor in vendor_dao.fetchVendors(session=session, supplier_id=supplier_id):
        if vendor.vendor_name.lower() == wanted:
            return vendor.id, vendor.vendor_name
    return None, vendor_ref.strip()


def _po_items(products) -> list:
    items = []
    for product in products or []:
        qty = int(product.get("qty", product.get("quantity", 1)) or 1)
        price = float(product.get("price", 0) or 0)
        if qty <= 0 or price < 0:
            raise BadRequestError("Purchase order items need a positive quantity and a non-negative price")
        item = dict(product)
        item["product_id"] = str(product.get("product_id") or product.get("id") or "") or None
        item["qty"] = qty
        item["quantity"] = qty
        item["price"] = price
        item["total"] = round(price * qty, 2)
        items.append(item)
    return items


def _po_calculations(items: list, calculations: Optional[dict]) -> dict:
    calculations = dict(calculations or {})
    subtotal = round(sum(i["total"] for i in items), 2)
    taxes = float(calculations.get("taxes", 0) or 0)
    shipping = float(calculations.get("shipping", 0) or 0)
    calculations.update({"subtotal": subtotal, "taxes": taxes, "shipping": shipping, "total": round(subtotal + taxes + shipping, 2)})
    return calculations


def _purchase_order(session: Session, supplier_id: uuid.UUID, po_id) -> PurchaseOrder:
    if not po_id:
        raise BadRequestError("Purchase order ID is required")
    po = PurchaseOrderDao().fetchSupplierPurchaseOrder(session=session, supplier_id=supplier_id, po_id=to_uuid(po_id))
    if po is None:
        raise NotFoundError("Purchase order not found")
    return po


def _set_arrival(po: PurchaseOrder, fields: dict) -> None:
    if "estimated_arrival" in fields:
        try:
            po.estimated_arrival = parse_datetime(fields["estimated_arrival"])
        except ValueError:
            raise BadRequestError("Invalid date format. Use ISO format.")


@transactional
def list_purchase_orders(session: Session, supplier_id: str) -> dict:
    orders = PurchaseOrderDao().fetchPurchaseOrders(session=session, supplier_id=to_uuid(supplier_id))
    return {"message": "Purchase orders retrieved successfully", "purchase_orders": [purchase_order_to_dict(po) for po in orders]}


@transactional
def get_purchase_order(session: Session, supplier_id: str, po_id: str) -> dict:
    po = _purchase_order(session, to_uuid(supplier_id), po_id)
    return {"message": "Purchase order retrieved successfully", "purchase_order": purchase_order_to_dict(po)}


@transactional
def create_purchase_order(session: Session, supplier_id: str, fields: dict) -> dict:
    supplier_id = to_uuid(supplier_id)
    vendor_ref = fields.get("vendor_id") or fields.get("vendor_name")
    if not vendor_ref:
        raise BadRequestError("Vendor name is required")
    items = _po_items(fields.get("products"))
    if not items:
        raise BadRequestError("At least one product is required")
    vendor_id, vendor_name = _resolve_vendor(session, supplier_id, str(vendor_ref))

    po = PurchaseOrder(supplier_id=supplier_id, products=items, vendor_id=vendor_id, vendor_name=vendor_name)
    _set_fields(po, fields, PURCHASE_ORDER_FIELDS)
    if po.status not in PURCHASE_ORDER_STATUSES or po.status == "received":
        raise BadRequestError(f"Invalid purchase order status: {po.status}")
    _set_arrival(po, fields)
    po.calculations = _po_calculations(items, fields.get("calculations"))
    PurchaseOrderDao().createPurchaseOrder(session=session, purchase_order=po)
    return {
        "message": "Purchase order created successfully",
        "purchase_order_id": str(po.id),
        "po_no": po.po_no,
        "purchase_order": purchase_order_to_dict(po),
    }


@transactional
def update_purchase_order(session: Session, supplier_id: str, po_id: str, fields: dict) -> dict:
    supplier_id = to_uuid(supplier_id)
    po = _purchase_order(session, supplier_id, po_id)
    if po.received_status:
        raise BadRequestError("Cannot update a purchase order that has been received")
    vendor_ref = fields.get("vendor_id") or fields.get("vendor_name")
    if vendor_ref and str(vendor_ref) not in (str(po.vendor_id), po.vendor_name):
        po.vendor_id, po.vendor_name = _resolve_vendor(session, supplier_id, str(vendor_ref))
    if fields.get("products") is not None:
        items = _po_items(fields["products"])
        if not items:
            raise BadRequestError("At least one product is required")
        po.products = items
    if fields.get("status") is not None and (fields["status"] not in PURCHASE_ORDER_STATUSES or fields["status"] == "received"):
        raise BadRequestError(f"Invalid purchase order status: {fields['status']}")
    _set_fields(po, fields, PURCHASE_ORDER_FIELDS)
    _set_arrival(po, fields)
    po.calculations = _po_calculations(po.products, fields.get("calculations") or po.calculations)
    return {"message": "Purchase order updated successfully", "purchase_order": purchase_order_to_dict(po)}


@transactional
def delete_purchase_order(session: Session, supplier_id: str, po_id: str) -> dict:
    po = _purchase_order(session, to_uuid(supplier_id), po_id)
    if po.received_status:
        raise BadRequestError("Cannot delete a purchase order that has been received")
    po.status = "cancelled"
    return {"message": "Purchase order deleted successfully"}


@transactional
def mark_purchase_order_received(session: Session, supplier_id: str, po_no: str) -> dict:
    """Receive a purchase order once, adding its quantities to the supplier's products."""
    supplier_id = to_uuid(supplier_id)
    if not po_no:
        raise BadRequestError("Purchase order number is required")
    po = PurchaseOrderDao().fetchSupplierPurchaseOrderByNumber(session=session, supplier_id=supplier_id, po_no=po_no)
    if po is None:
        raise NotFoundError("Purchase order not found")
    if po.received_status:
        raise BadRequestError("Purchase order has already been received")
    if po.status == "cancelled":
        raise BadRequestError("Cannot receive a cancelled purchase order")

    product_dao = ProductDao()
    for item in po.products or []:
        product_id = to_uuid_or_none(item.get("product_id"))
        if product_id is None:
            continue
        product = product_dao.fetchSupplierProduct(session=session, supplier_id=supplier_id, product_id=product_id)
        if product is not None:
            product.quantity = (product.quantity or 0) + int(item.get("quantity", 0) or 0)
    po.received_status = True
    po.received_at = utcnow()
    po.status = "received"
    logger.info(f"Purchase order {po.po_no} received by supplier {supplier_id}")
    return {"message": "Purchase order marked as received successfully", "purchase_order": purchase_order_to_dict(po)}


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def _customer(session: Session, supplier_id: uuid.UUID, customer_id) -> Customer:
    if not customer_id:
        raise BadRequestError("Customer ID is required")
    customer = CustomerDao().fetchSupplierCustomer(session=session, supplier_id=supplier_id, customer_id=to_uuid(customer_id))
    if customer is None or customer.status == "deleted":
        raise NotFoundError("Customer not found")
    return customer


@transactional
def list_customers(session: Session, supplier_id: str) -> dict:
    customers = CustomerDao().fetchCustomers(session=session, supplier_id=to_uuid(supplier_id))
    return {"message": "Customers retrieved successfully", "customers": [customer_to_dict(c) for c in customers]}


@transactional
def get_customer(session: Session, supplier_id: str, customer_id: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    customer = _customer(session, supplier_id, customer_id)
    orders = [o for o in OrderDao().fetchOrders(session=session, supplier_id=supplier_id) if o.customer_id == customer.id]
    data = customer_to_dict(customer)
    data["recent_orders"] = [
        {"id": str(o.id), "order_no": o.order_no, "status": o.status, "total": o.total} for o in orders[:5]
    ]
    return {"message": "Customer retrieved successfully", "customer": data}


@transactional
def create_customer(session: Session, supplier_id: str, fields: dict) -> dict:
    customer_dao = CustomerDao()
    supplier_id = to_uuid(supplier_id)
    if not fields.get("first_name") or not fields.get("last_name"):
        raise BadRequestError("First name and last name are required")
    if not fields.get("email"):
        raise BadRequestError("Email is required")
    if customer_dao.fetchCustomerByEmail(session=session, supplier_id=supplier_id, email=fields["email"]):
        raise BadRequestError("Customer with this email already exists")
    customer = Customer(supplier_id=supplier_id, first_name=fields["first_name"], email=fields["email"])
    _set_fields(customer, fields, CUSTOMER_FIELDS)
    customer.email = customer.email.lower()
    customer_dao.createCustomer(session=session, customer=customer)
    return {"message": "Customer created successfully", "customer": customer_to_dict(customer)}


@transactional
def update_customer(session: Session, supplier_id: str, customer_id: str, fields: dict) -> dict:
    customer_dao = CustomerDao()
    supplier_id = to_uuid(supplier_id)
    customer = _customer(session, supplier_id, customer_id)
    if fields.get("email"):
        existing = customer_dao.fetchCustomerByEmail(session=session, supplier_id=supplier_id, email=fields["email"])
        if existing is not None and existing.id != customer.id:
            raise BadRequestError("Customer with this email already exists")
    if fields.get("status") is not None and fields["status"] not in CONTACT_STATUSES:
        raise BadRequestError(f"Invalid customer status: {fields['status']}")
    _set_fields(customer, fields, CUSTOMER_FIELDS)
    customer.email = customer.email.lower()
    return {"message": "Customer updated successfully", "customer": customer_to_dict(customer)}


@transactional
def delete_customer(session: Session, supplier_id: str, customer_id: str) -> dict:
    customer = _customer(session, to_uuid(supplier_id), customer_id)
    customer.status = "deleted"
    return {"message": "Customer deleted successfully"}


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


@transactional
def get_inventory(session: Session, supplier_id: str) -> dict:
    """
    Stock per active product.

    ``committed`` counts quantities on pending/processing legacy orders;
    products that are not physical or not tracked report ``"Not tracked"``.
    """
    supplier_id = to_uuid(supplier_id)
    products = [p for p in ProductDao().fetchProducts(session=session, supplier_id=supplier_id) if p.status == "active"]
    committed = {}
    for order in OrderDao().fetchOrders(session=session, supplier_id=supplier_id, statuses=("pending", "processing")):
        for item in order.products or []:
            if item.get("product_id"):
                committed[item["product_id"]] = committed.get(item["product_id"], 0) + int(item.get("qty", 0) or 0)

    inventory = []
    for product in products:
        tracked = product.physical_product and product.track_quantity
        current = product.quantity or 0
        taken = committed.get(str(product.id), 0)
        inventory.append(
            {
                "id": str(product.id),
                "product_name": product.title,
                "image": (product.media or [""])[0],
                "current_qty": current if tracked else "Not tracked",
                "committed": taken if tracked else "Not tracked",
                "available": max(0, current - taken) if tracked else "Not tracked",
                "low_stock": bool(tracked and product.is_low_stock()),
            }
        )
    return {"message": "Inventory retrieved successfully", "inventory": inventory}
