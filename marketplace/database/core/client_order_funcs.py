"""
Service-layer operations for self-service client orders.

A checkout may contain products from several suppliers. It is split into one
``ClientOrder`` per supplier; tax and shipping are shared out in proportion to
each supplier's subtotal.
"""

import logging
import uuid
from collections import OrderedDict
from functools import partial
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.core import mailer
from marketplace.database.core.serializers import order_to_dict
from marketplace.database.daos.contact_dao import CustomerDao
from marketplace.database.daos.order_dao import ClientOrderDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.daos.user_dao import UserDao
from marketplace.database.entities.client_order import CLIENT_ORDER_STATUSES, PAYMENT_STATUSES, ClientOrder
from marketplace.database.entities.customer import Customer
from marketplace.database.helpers.ids import to_uuid
from marketplace.database.helpers.transactionManagement import after_commit, transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

REQUIRED_CHECKOUT_FIELDS = ("email", "first_name", "last_name", "address", "city", "phone")
ADDRESS_FIELDS = ("address", "apartment", "city", "province", "country", "postal_code")


def _format_address(details: dict) -> str:
    parts = [details.get("address", "")]
    if details.get("apartment"):
        parts.append(details["apartment"])
    parts.append(details.get("city", ""))
    if details.get("province"):
        parts.append(details["province"])
    tail = f"{details.get('country', '')} {details.get('postal_code', '')}".strip()
    if tail:
        parts.append(tail)
    return ", ".join(p for p in parts if p)


def _upsert_customer(session: Session, client_id: uuid.UUID, supplier_id: uuid.UUID, details: dict, order_total: float) -> Customer:
    """Create or refresh the supplier's customer record for a checkout."""
    customer_dao = CustomerDao()
    customer = customer_dao.fetchCustomerByEmail(session=session, supplier_id=supplier_id, email=details["email"])
    address = {key: details.get(key, "") for key in ADDRESS_FIELDS}
    if customer is None:
        customer = Customer(
            supplier_id=supplier_id,
            first_name=details["first_name"],
            email=details["email"],
            last_name=details.get("last_name", ""),
            phone_number=details.get("phone", ""),
            default_address=address,
            client_id=client_id,
        )
        customer_dao.createCustomer(session=session, customer=customer)
    else:
        customer.client_id = customer.client_id or client_id
        customer.phone_number = details.get("phone") or customer.phone_number
        customer.default_address = address
    customer.record_order(order_total)
    return customer


def _send_confirmation(email: str, orders: list) -> None:
    try:
        mailer.send_order_confirmation(email=email, orders=orders)
    except Exception as e:
        logger.error(f"Failed to send order confirmation email: {e}")


def _send_cancellation(email: str, order_no: str) -> None:
    try:
        mailer.send_email(email, f"Order Cancelled - Order #{order_no}", f"Your order #{order_no} has been cancelled.")
    except Exception as e:
        logger.error(f"Failed to send cancellation email: {e}")


def _restore_stock(session: Session, order: ClientOrder) -> None:
    product_dao = ProductDao()
    ids = [to_uuid(item["product_id"]) for item in order.items or [] if item.get("product_id")]
    products = {p.id: p for p in product_dao.fetchProductsByIds(session=session, product_ids=ids)}
    for item in order.items or []:
        product = products.get(to_uuid(item["product_id"])) if item.get("product_id") else None
        if product is not None and product.track_quantity:
            product.quantity = (product.quantity or 0) + int(item.get("quantity", 0) or 0)


@transactional
def place_order(session: Session, client_id: str, checkout: dict) -> dict:
    """
    Check out a cart.

    Parameters
    ----------
    checkout : dict
        Contact and address fields (``email, first_name, last_name, address,
        apartment, city, province, country, postal_code, phone,
        shipping_method, discount_code``), ``items`` as
        ``[{"product_id", "quantity"}]`` and the client-side ``subtotal,
        shipping, tax, total``.

    Returns
    -------
    dict
        ``{"message", "orders", "total_orders", "grand_total"}``.

    Raises
    ------
    BadRequestError
        Missing contact fields, unknown/inactive products, insufficient stock
        or a subtotal that differs from the server's by more than 0.01.
    """
    product_dao = ProductDao()
    client_id = to_uuid(client_id)
    missing = [f for f in REQUIRED_CHECKOUT_FIELDS if not checkout.get(f)]
    if missing:
        raise BadRequestError(f"Required fields missing: {', '.join(REQUIRED_CHECKOUT_FIELDS)}")
    items = checkout.get("items") or []
    if not items:
        raise BadRequestError("Order must contain at least one item")
    subtotal = float(checkout.get("subtotal") or 0)
    if subtotal <= 0 or not checkout.get("total"):
        raise BadRequestError("Subtotal and total are required")
    shipping = float(checkout.get("shipping") or 0)
    tax = float(checkout.get("tax") or 0)

    requested = OrderedDict()
    for item in items:
        quantity = int(item.get("quantity") or 0)
        if not item.get("product_id") or quantity <= 0:
            raise BadRequestError("Each item must have product_id and valid quantity")
        product_id = to_uuid(item["product_id"])
        requested[product_id] = requested.get(product_id, 0) + quantity

    products = {p.id: p for p in product_dao.fetchProductsByIds(session=session, product_ids=list(requested))}
    groups = OrderedDict()
    computed_subtotal = 0.0
    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None:
            raise BadRequestError(f"Product not found: {product_id}")
        if product.status != "active":
            raise BadRequestError(f"Product is not available: {product.title}")
        if product.track_quantity and not product.continue_out_of_stock and (product.quantity or 0) < quantity:
            raise BadRequestError(f"Insufficient stock for product: {product.title}")
        line_total = round(product.price * quantity, 2)
        computed_subtotal += line_total
        group = groups.setdefault(product.supplier_id, {"items": [], "subtotal": 0.0})
        group["items"].append(
            {
                "product_id": str(product.id),
                "title": product.title,
                "price": product.price,
                "quantity": quantity,
                "total": line_total,
                "image": (product.media or [None])[0],
            }
        )
        group["subtotal"] += line_total

    if abs(computed_subtotal - subtotal) > 0.01:
        raise BadRequestError("Subtotal does not match calculated total")

    details = {
        key: checkout.get(key, "") or ""
        for key in REQUIRED_CHECKOUT_FIELDS + ("apartment", "province", "country", "postal_code", "shipping_method", "discount_code")
    }
    details["email"] = details["email"].strip().lower()
    shipping_address = {key: details.get(key, "") for key in ADDRESS_FIELDS}
    shipping_address["formatted"] = _format_address(details)

    created = []
    for supplier_id, group in groups.items():
        share = group["subtotal"] / computed_subtotal if computed_subtotal else 0
        order_shipping = round(share * shipping, 2)
        order_tax = round(share * tax, 2)
        order = ClientOrder(
            client_id=client_id,
            supplier_id=supplier_id,
            items=group["items"],
            subtotal=round(group["subtotal"], 2),
            tax=order_tax,
            shipping=order_shipping,
            total=round(group["subtotal"] + order_shipping + order_tax, 2),
            payment_method=details.get("shipping_method") or "cash_on_delivery",
            shipping_address=shipping_address,
            customer_details=details,
            notes=f"Discount code applied: {details['discount_code']}" if details.get("discount_code") else "",
        )
        ClientOrderDao().createClientOrder(session=session, order=order)
        for item in group["items"]:
            product = products[to_uuid(item["product_id"])]
            if product.track_quantity:
                product.quantity = max(0, (product.quantity or 0) - item["quantity"])
        _upsert_customer(session, client_id, supplier_id, details, order.total)
        created.append(order_to_dict(order))
        logger.info(f"Client order {order.order_no} placed for supplier {supplier_id}")

    after_commit(partial(_send_confirmation, details["email"], created))

    return {
        "message": "Order placed successfully",
        "orders": created,
        "total_orders": len(created),
        "grand_total": round(sum(o["total"] for o in created), 2),
    }


def _client_order(session: Session, client_id: uuid.UUID, order_id: str) -> ClientOrder:
    if not order_id:
        raise BadRequestError("Order ID is required")
    order = ClientOrderDao().fetchClientOrder(session=session, order_id=to_uuid(order_id))
    if order is None or order.client_id != client_id:
        raise NotFoundError("Order not found")
    return order


@transactional
def list_client_orders(session: Session, client_id: str, status: Optional[str] = None) -> dict:
    orders = ClientOrderDao().fetchClientOrders(session=session, client_id=to_uuid(client_id), statuses=[status] if status else None)
    return {"orders": [order_to_dict(o) for o in orders], "total": len(orders)}


@transactional
def get_client_order(session: Session, client_id: str, order_id: str) -> dict:
    order = _client_order(session, to_uuid(client_id), order_id)
    supplier = UserDao().fetchUserById(session=session, user_id=order.supplier_id)
    data = order_to_dict(order)
    data["supplier"] = {"id": str(order.supplier_id), "username": supplier.username if supplier else "", "email": supplier.email if supplier else ""}
    return {"order": data}


@transactional
def cancel_client_order(session: Session, client_id: str, order_id: str, reason: str = "") -> dict:
    order = _client_order(session, to_uuid(client_id), order_id)
    if not order.can_cancel():
        raise BadRequestError("Order cannot be cancelled at this stage")
    order.status = "cancelled"
    order.cancel_reason = reason or ""
    _restore_stock(session, order)
    customer_email = (order.customer_details or {}).get("email")
    if customer_email:
        after_commit(partial(_send_cancellation, customer_email, order.order_no))
    return {"message": "Order cancelled successfully", "order": order_to_dict(order)}


@transactional
def request_return(session: Session, client_id: str, order_id: str, reason: str = "") -> dict:
    order = _client_order(session, to_uuid(client_id), order_id)
    if order.status in ("cancelled", "returned"):
        raise BadRequestError("Order cannot be returned")
    if not order.can_return():
        raise BadRequestError("Only delivered orders can be returned")
    order.status = "returned"
    order.return_reason = reason or ""
    return {"message": "Return request submitted successfully", "order_id": str(order.id), "return_status": "requested"}


@transactional
def list_supplier_client_orders(session: Session, supplier_id: str, status: Optional[str] = None) -> dict:
    orders = ClientOrderDao().fetchClientOrders(session=session, supplier_id=to_uuid(supplier_id), statuses=[status] if status else None)
    return {"orders": [order_to_dict(o) for o in orders], "total": len(orders)}


@transactional
def update_client_order_status(session: Session, supplier_id: str, order_id: str, status: Optional[str] = None, payment_status: Optional[str] = None) -> dict:
    """Supplier-side status change; cancelling restores stock."""
    order = ClientOrderDao().fetchClientOrder(session=session, order_id=to_uuid(order_id))
    if order is None or order.supplier_id != to_uuid(supplier_id):
        raise NotFoundError("Order not found")
    if status is not None:
        if status not in CLIENT_ORDER_STATUSES:
            raise BadRequestError(f"Invalid order status: {status}")
        if status == "cancelled" and order.status != "cancelled":
            if not order.can_cancel():
                raise BadRequestError("Order cannot be cancelled at this stage")
            _restore_stock(session, order)
        order.status = status
    if payment_status is not None:
        if payment_status not in PAYMENT_STATUSES:
            raise BadRequestError(f"Invalid payment status: {payment_status}")
        order.payment_status = payment_status
    return {"message": "Order status updated successfully", "order": order_to_dict(order)}
