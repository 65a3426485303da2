"""
Service-layer operations for legacy (supplier-created) orders.

Line items are stored as ``{"product_id", "title", "price", "qty",
"track_quantity", "media"}``. Totals in ``calculations`` are always derived
from the items and the submitted discount/tax percentages.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.core import mailer
from marketplace.database.core.serializers import order_to_dict
from marketplace.database.daos.contact_dao import CustomerDao
from marketplace.database.daos.order_dao import OrderDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.entities.order import ORDER_STATUSES, Order
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

ORDER_UPDATE_FIELDS = ("notes", "market_price", "tags", "channel", "payment_due_later", "shipping_address", "bill_paid", "status")
STOCK_RETURNED_STATUSES = ("cancelled", "returned")
"""Statuses whose items have already gone back on the shelf."""


def normalize_items(items) -> list:
    """Coerce submitted line items; ``id`` is accepted for ``product_id``."""
    normalized = []
    for item in items or []:
        product_id = item.get("product_id") or item.get("id")
        qty = int(item.get("qty", item.get("quantity", 0)) or 0)
        price = float(item.get("price", 0) or 0)
        if qty <= 0:
            raise BadRequestError("Item quantity must be at least 1")
        if price < 0:
            raise BadRequestError("Item price cannot be negative")
        normalized.append(
            {
                "product_id": str(product_id) if product_id else None,
                "title": item.get("title", ""),
                "price": price,
                "qty": qty,
                "track_quantity": bool(item.get("track_quantity", True)),
                "media": list(item.get("media") or []),
            }
        )
    return normalized


def compute_calculations(items: list, calculations: Optional[dict]) -> dict:
    """
    Derive order totals.

    ``total_discount = subtotal * discount% / 100``; tax applies to the
    discounted subtotal. Amounts are rounded to 2 decimals.
    """
    calculations = dict(calculations or {})
    discount_percentage = float(calculations.get("discount_percentage", 0) or 0)
    tax_percentage = float(calculations.get("tax_percentage", 0) or 0)
    if not 0 <= discount_percentage <= 100 or tax_percentage < 0:
        raise BadRequestError("Invalid discount or tax percentage")
    subtotal = round(sum(i["price"] * i["qty"] for i in items), 2)
    total_discount = round(subtotal * discount_percentage / 100, 2)
    total_tax = round((subtotal - total_discount) * tax_percentage / 100, 2)
    return {
        "subtotal": subtotal,
        "discount_percentage": discount_percentage,
        "tax_percentage": tax_percentage,
        "total_discount": total_discount,
        "total_tax": total_tax,
        "total": round(subtotal - total_discount + total_tax, 2),
        "shipping_address": calculations.get("shipping_address", ""),
    }


def _adjust_stock(session: Session, supplier_id: uuid.UUID, items: list, sign: int) -> None:
    """Return (+1) or take (-1) tracked quantities; stock never drops below 0."""
    product_dao = ProductDao()
    for item in items or []:
        if not item.get("track_quantity") or not item.get("product_id"):
            continue
        product = product_dao.fetchSupplierProduct(session=session, supplier_id=supplier_id, product_id=to_uuid(item["product_id"]))
        if product is None or not product.track_quantity:
            continue
        product.quantity = max(0, (product.quantity or 0) + sign * int(item.get("qty", 0) or 0))


def _fetch_by_number(session: Session, supplier_id: uuid.UUID, order_no: str) -> Order:
    if not order_no:
        raise BadRequestError("Order number is required")
    order = OrderDao().fetchSupplierOrderByNumber(session=session, supplier_id=supplier_id, order_no=order_no)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _customer_names(session: Session, orders) -> dict:
    ids = list({o.customer_id for o in orders})
    return {c.id: c.customer_name for c in CustomerDao().fetchCustomersByIds(session=session, customer_ids=ids)}


@transactional
def list_orders(session: Session, supplier_id: str) -> dict:
    orders = OrderDao().fetchOrders(session=session, supplier_id=to_uuid(supplier_id))
    names = _customer_names(session, orders)
    return {"message": "Orders retrieved successfully", "orders": [order_to_dict(o, names.get(o.customer_id, "")) for o in orders]}


@transactional
def get_order(session: Session, supplier_id: str, order_id: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    order = OrderDao().fetchSupplierOrder(session=session, supplier_id=supplier_id, order_id=to_uuid(order_id))
    if order is None:
        raise NotFoundError("Order not found")
    customer = CustomerDao().fetchSupplierCustomer(session=session, supplier_id=supplier_id, customer_id=order.customer_id)
    data = order_to_dict(order, customer.customer_name if customer else "")
    data["customer"] = (
        {"id": str(customer.id), "customer_name": customer.customer_name, "email": customer.email, "phone_number": customer.phone_number}
        if customer
        else None
    )
    return {"message": "Order retrieved successfully", "order": data}


@transactional
def create_order(session: Session, supplier_id: str, fields: dict) -> dict:
    """
    Record an order for one of the supplier's customers.

    Decrements tracked stock and adds the total to the customer's
    ``amount_spent`` / ``orders_count``.
    """
    supplier_id = to_uuid(supplier_id)
    items = normalize_items(fields.get("products"))
    if not items:
        raise BadRequestError("Order must contain at least one product")
    if not fields.get("customer_id"):
        raise BadRequestError("Customer ID is required")
    customer = CustomerDao().fetchSupplierCustomer(session=session, supplier_id=supplier_id, customer_id=to_uuid(fields["customer_id"]))
    if customer is None:
        raise NotFoundError("Customer not found")

    order = Order(
        supplier_id=supplier_id,
        customer_id=customer.id,
        products=items,
        calculations=compute_calculations(items, fields.get("calculations")),
    )
    for key in ORDER_UPDATE_FIELDS:
        if fields.get(key) is not None and key != "status":
            setattr(order, key, fields[key])
    OrderDao().createOrder(session=session, order=order)
    _adjust_stock(session, supplier_id, items, -1)
    customer.record_order(order.total)
    logger.info(f"Order {order.order_no} created by supplier {supplier_id}")
    return {"message": "Order created successfully", "order_id": str(order.id), "order_no": order.order_no, "order": order_to_dict(order, customer.customer_name)}


@transactional
def update_order(session: Session, supplier_id: str, order_id: str, fields: dict) -> dict:
    """
    Update an order.

    While the order holds stock, replacing ``products`` returns the old
    quantities and takes the new ones. A status change into ``cancelled`` or
    ``returned`` gives the stock back; a change out of those takes it again.
    """
    supplier_id = to_uuid(supplier_id)
    order = OrderDao().fetchSupplierOrder(session=session, supplier_id=supplier_id, order_id=to_uuid(order_id))
    if order is None:
        raise NotFoundError("Order not found")
    if fields.get("status") is not None and fields["status"] not in ORDER_STATUSES:
        raise BadRequestError(f"Invalid order status: {fields['status']}")
    previous_total = order.total
    held_stock = order.status not in STOCK_RETURNED_STATUSES

    if fields.get("products") is not None:
        items = normalize_items(fields["products"])
        if not items:
            raise BadRequestError("Order must contain at least one product")
        if held_stock:
            _adjust_stock(session, supplier_id, order.products, +1)
            _adjust_stock(session, supplier_id, items, -1)
        order.products = items
    if fields.get("products") is not None or fields.get("calculations") is not None:
        order.calculations = compute_calculations(order.products, fields.get("calculations") or order.calculations)
    for key in ORDER_UPDATE_FIELDS:
        if fields.get(key) is not None:
            setattr(order, key, fields[key])

    holds_stock = order.status not in STOCK_RETURNED_STATUSES
    if held_stock and not holds_stock:
        _adjust_stock(session, supplier_id, order.products, +1)
    elif holds_stock and not held_stock:
        _adjust_stock(session, supplier_id, order.products, -1)

    customer = CustomerDao().fetchSupplierCustomer(session=session, supplier_id=supplier_id, customer_id=order.customer_id)
    if customer is not None and order.total != previous_total:
        customer.amount_spent = round(max(0, (customer.amount_spent or 0) - previous_total + order.total), 2)
    return {"message": "Order updated successfully", "order": order_to_dict(order, customer.customer_name if customer else "")}


@transactional
def cancel_order(session: Session, supplier_id: str, order_id: str) -> dict:
    """Soft delete: mark cancelled, restore stock and roll back the customer's totals."""
    supplier_id = to_uuid(supplier_id)
    order = OrderDao().fetchSupplierOrder(session=session, supplier_id=supplier_id, order_id=to_uuid(order_id))
    if order is None:
        raise NotFoundError("Order not found")
    if order.status == "cancelled":
        raise BadRequestError("Order is already cancelled")
    if order.status == "returned":
        raise BadRequestError("Cannot cancel an order that has been restocked")
    order.status = "cancelled"
    customer = CustomerDao().fetchSupplierCustomer(session=session, supplier_id=supplier_id, customer_id=order.customer_id)
    if customer is not None:
        customer.amount_spent = round(max(0, (customer.amount_spent or 0) - order.total), 2)
        customer.orders_count = max(0, (customer.orders_count or 0) - 1)
    _adjust_stock(session, supplier_id, order.products, +1)
    return {"message": "Order deleted successfully"}


@transactional
def restock_order(session: Session, supplier_id: str, order_no: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    order = _fetch_by_number(session, supplier_id, order_no)
    if order.status == "returned":
        raise BadRequestError("Order has already been restocked")
    if order.status == "cancelled":
        raise BadRequestError("Cannot restock a cancelled order")
    _adjust_stock(session, supplier_id, order.products, +1)
    order.status = "returned"
    return {"message": "Order restocked successfully"}


@transactional
def set_fulfillment_status(session: Session, supplier_id: str, order_no: str, fulfillment_status: bool) -> dict:
    order = _fetch_by_number(session, to_uuid(supplier_id), order_no)
    order.fulfillment_status = bool(fulfillment_status)
    if order.fulfillment_status:
        order.status = "completed" if order.payment_status else "processing"
    return {"message": f"Order {'fulfilled' if order.fulfillment_status else 'unfulfilled'} successfully", "order": order_to_dict(order)}


@transactional
def mark_as_paid(session: Session, supplier_id: str, order_no: str, payment_status: bool) -> dict:
    order = _fetch_by_number(session, to_uuid(supplier_id), order_no)
    order.payment_status = bool(payment_status)
    if order.payment_status and order.fulfillment_status:
        order.status = "completed"
    elif order.payment_status:
        order.status = "processing"
    if order.payment_status:
        order.bill_paid = order.total
    return {"message": f"Order {'marked as paid' if order.payment_status else 'marked as unpaid'} successfully", "order": order_to_dict(order)}


@transactional
def mark_as_delivered(session: Session, supplier_id: str, order_no: str, delivery_status: bool) -> dict:
    order = _fetch_by_number(session, to_uuid(supplier_id), order_no)
    order.delivery_status = bool(delivery_status)
    if order.delivery_status:
        order.status = "completed"
        order.fulfillment_status = True
    return {
        "message": f"Order {'marked as delivered' if order.delivery_status else 'marked as undelivered'} successfully",
        "order": order_to_dict(order),
    }


@transactional
def send_invoice(session: Session, supplier_id: str, order_no: str) -> dict:
    supplier_id = to_uuid(supplier_id)
    order = _fetch_by_number(session, supplier_id, order_no)
    customer = CustomerDao().fetchSupplierCustomer(session=session, supplier_id=supplier_id, customer_id=order.customer_id)
    if customer is None or not customer.email:
        raise BadRequestError("Customer email not found")
    calc = order.calculations or {}
    lines = [f"Invoice {order.order_no}", ""]
    for item in order.products or []:
        lines.append(f"{item.get('title', '')} x{item.get('qty', 0)}  {item.get('price', 0) * item.get('qty', 0):.2f}")
    lines += [
        "",
        f"Subtotal: {calc.get('subtotal', 0):.2f} {order.market_price}",
        f"Discount: {calc.get('total_discount', 0):.2f}",
        f"Tax: {calc.get('total_tax', 0):.2f}",
        f"Total: {order.total:.2f} {order.market_price}",
    ]
    mailer.send_email(customer.email, f"Invoice {order.order_no}", "\n".join(lines))
    return {"message": "Invoice sent successfully"}
