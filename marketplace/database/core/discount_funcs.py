"""
Service-layer operations for supplier discounts: CRUD, code validation,
application to an order and usage reporting.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from marketplace.database.core.serializers import discount_to_dict
from marketplace.database.daos.collection_dao import CollectionDao
from marketplace.database.daos.contact_dao import CustomerDao
from marketplace.database.daos.discount_dao import DiscountDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.entities.discount import (
    APPLIES_TO,
    DISCOUNT_STATUSES,
    DISCOUNT_TYPES,
    DISCOUNT_VALUE_TYPES,
    ELIGIBILITY,
    MIN_PURCHASE_REQUIREMENTS,
    Discount,
)
from marketplace.database.helpers.ids import to_uuid, to_uuid_list
from marketplace.database.helpers.timeutils import parse_datetime
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn")

DISCOUNT_FIELDS = (
    "title", "discount_value_type", "discount_value", "applies_to", "is_end_date",
    "eligibility", "min_purchase_req", "min_amount_value", "min_items_value", "is_max_limit",
    "max_total_uses", "one_per_customer", "customer_buy_spend", "buy_spend_quantity",
    "buy_spend_amount", "buy_spend_any_item_from", "gets_quantity", "gets_any_item_from",
    "discounted_value", "percentage", "amount_off_each", "is_max_users_per_order", "max_users",
)
ID_LIST_FIELDS = ("sale_items", "customer_list", "buy_spend_sale_items", "gets_sale_items")


def _ids(values) -> list:
    """Accept ids or ``{"id": ...}`` objects and return id strings."""
    ids = []
    for value in values or []:
        if isinstance(value, dict):
            value = value.get("id")
        if value:
            ids.append(str(value))
    return ids


def _validate_values(discount: Discount) -> None:
    if discount.discount_type not in DISCOUNT_TYPES:
        raise BadRequestError(f"Invalid discount type: {discount.discount_type}")
    if discount.discount_value_type not in DISCOUNT_VALUE_TYPES:
        raise BadRequestError(f"Invalid discount value type: {discount.discount_value_type}")
    if discount.applies_to not in APPLIES_TO:
        raise BadRequestError(f"Invalid applies_to: {discount.applies_to}")
    if discount.eligibility not in ELIGIBILITY:
        raise BadRequestError(f"Invalid eligibility: {discount.eligibility}")
    if discount.min_purchase_req not in MIN_PURCHASE_REQUIREMENTS:
        raise BadRequestError(f"Invalid minimum purchase requirement: {discount.min_purchase_req}")
    if discount.discount_value_type == "percentage" and not 0 <= discount.discount_value <= 100:
        raise BadRequestError("Percentage discount must be between 0 and 100")
    if discount.discount_value_type == "fixed_amount" and discount.discount_value < 0:
        raise BadRequestError("Fixed amount discount must be positive")
    if len(discount.title or "") > 100:
        raise BadRequestError("Title cannot exceed 100 characters")
    if discount.discount_type == "code" and not (discount.code or "").strip():
        raise BadRequestError("Discount code is required for code-type discounts")


def _validate_references(session: Session, supplier_id: uuid.UUID, discount: Discount) -> None:
    sale_items = to_uuid_list(discount.sale_items)
    if discount.applies_to == "products" and sale_items:
        found = ProductDao().fetchProductsByIds(session=session, product_ids=sale_items, supplier_id=supplier_id)
        if len(found) != len(set(sale_items)):
            raise BadRequestError("Some products not found or don't belong to you")
    if discount.applies_to == "collections" and sale_items:
        found = CollectionDao().fetchCollectionsByIds(session=session, collection_ids=sale_items, supplier_id=supplier_id)
        if len(found) != len(set(sale_items)):
            raise BadRequestError("Some collections not found or don't belong to you")
    customers = to_uuid_list(discount.customer_list)
    if discount.eligibility == "specific_customers" and customers:
        found = CustomerDao().fetchCustomersByIds(session=session, customer_ids=customers)
        if len([c for c in found if c.supplier_id == supplier_id]) != len(set(customers)):
            raise BadRequestError("Some customers not found or don't belong to you")


def _apply_fields(discount: Discount, fields: dict) -> None:
    for key in DISCOUNT_FIELDS:
        if fields.get(key) is not None:
            setattr(discount, key, fields[key])
    for key in ID_LIST_FIELDS:
        if fields.get(key) is not None:
            setattr(discount, key, _ids(fields[key]))
    try:
        if fields.get("start_datetime"):
            discount.start_datetime = parse_datetime(fields["start_datetime"])
        if "end_datetime" in fields:
            discount.end_datetime = parse_datetime(fields["end_datetime"]) if discount.is_end_date else None
    except ValueError:
        raise BadRequestError("Invalid date format. Use ISO format.")


def _fetch(session: Session, supplier_id: uuid.UUID, discount_id) -> Discount:
    if not discount_id:
        raise BadRequestError("Discount ID is required")
    discount = DiscountDao().fetchSupplierDiscount(session=session, supplier_id=supplier_id, discount_id=to_uuid(discount_id))
    if discount is None:
        raise NotFoundError("Discount not found")
    return discount


def _public_view(discount: Discount) -> dict:
    data = discount_to_dict(discount)
    return {
        key: data[key]
        for key in (
            "id", "title", "code", "discount_value_type", "discount_value", "applies_to", "sale_items",
            "min_purchase_req", "min_amount_value", "min_items_value", "end_datetime",
        )
    }


@transactional
def add_discount(session: Session, supplier_id: str, fields: dict) -> dict:
    """
    Create a discount.

    Raises
    ------
    BadRequestError
        Missing fields, invalid enums/values, a duplicate code, foreign
        sale items or customers, or an end date not after the start date.
    """
    discount_dao = DiscountDao()
    supplier_id = to_uuid(supplier_id)
    if not fields.get("discount_type") or not fields.get("title") or not fields.get("discount_value_type") or fields.get("discount_value") is None:
        raise BadRequestError("Missing required fields")
    code = (fields.get("code") or "").strip().upper() or None
    if fields["discount_type"] == "code" and code and discount_dao.fetchDiscountByCode(session=session, supplier_id=supplier_id, code=code):
        raise BadRequestError("Discount code already exists")

    discount = Discount(
        supplier_id=supplier_id,
        discount_type=fields["discount_type"],
        title=fields["title"],
        discount_value_type=fields["discount_value_type"],
        discount_value=float(fields["discount_value"]),
        applies_to=fields.get("applies_to") or "all",
    )
    discount.code = code if fields["discount_type"] == "code" else None
    _apply_fields(discount, fields)
    _validate_values(discount)
    _validate_references(session, supplier_id, discount)
    discount.apply_save_rules()
    discount_dao.createDiscount(session=session, discount=discount)
    return {"message": "Discount created successfully", "discount": discount_to_dict(discount)}


@transactional
def list_discounts(session: Session, supplier_id: str, status: Optional[str] = None, page: int = 1, limit: int = 10) -> dict:
    if status and status not in DISCOUNT_STATUSES:
        raise BadRequestError(f"Invalid discount status: {status}")
    discounts = DiscountDao().fetchDiscounts(session=session, supplier_id=to_uuid(supplier_id), status=status)
    page = max(int(page or 1), 1)
    limit = max(int(limit or 10), 1)
    window = discounts[(page - 1) * limit : page * limit]
    return {
        "message": "Discounts retrieved successfully",
        "discounts": [discount_to_dict(d) for d in window],
        "pagination": {"page": page, "limit": limit, "total": len(discounts), "pages": (len(discounts) + limit - 1) // limit},
    }


@transactional
def get_discount(session: Session, supplier_id: str, discount_id: str) -> dict:
    discount = _fetch(session, to_uuid(supplier_id), discount_id)
    return {"message": "Discount retrieved successfully", "discount": discount_to_dict(discount)}


@transactional
def update_discount(session: Session, supplier_id: str, discount_id: str, fields: dict) -> dict:
    discount_dao = DiscountDao()
    supplier_id = to_uuid(supplier_id)
    discount = _fetch(session, supplier_id, discount_id)
    if fields.get("code") and discount.discount_type == "code":
        code = fields["code"].strip().upper()
        existing = discount_dao.fetchDiscountByCode(session=session, supplier_id=supplier_id, code=code)
        if existing is not None and existing.id != discount.id:
            raise BadRequestError("Discount code already exists")
        discount.code = code
    if fields.get("status") is not None:
        if fields["status"] not in DISCOUNT_STATUSES:
            raise BadRequestError(f"Invalid discount status: {fields['status']}")
        discount.status = fields["status"]
    _apply_fields(discount, fields)
    _validate_values(discount)
    _validate_references(session, supplier_id, discount)
    discount.apply_save_rules()
    return {"message": "Discount updated successfully", "discount": discount_to_dict(discount)}


@transactional
def delete_discount(session: Session, supplier_id: str, discount_id: str) -> dict:
    discount = _fetch(session, to_uuid(supplier_id), discount_id)
    DiscountDao().deleteDiscount(session=session, discount=discount)
    return {"message": "Discount deleted successfully"}


@transactional
def toggle_discount_status(session: Session, supplier_id: str, discount_id: str) -> dict:
    discount = _fetch(session, to_uuid(supplier_id), discount_id)
    if discount.status in ("expired", "used_up"):
        raise BadRequestError(f"Cannot toggle a discount that is {discount.status.replace('_', ' ')}")
    discount.status = "inactive" if discount.status == "active" else "active"
    return {
        "message": f"Discount {'activated' if discount.status == 'active' else 'deactivated'} successfully",
        "discount": {"id": str(discount.id), "title": discount.title, "status": discount.status},
    }


@transactional
def validate_discount_code(session: Session, supplier_id: str, code: str, customer_id: Optional[str] = None) -> dict:
    if not code:
        raise BadRequestError("Discount code is required")
    discount = DiscountDao().fetchDiscountByCode(session=session, supplier_id=to_uuid(supplier_id), code=code)
    if discount is None or discount.discount_type != "code":
        raise NotFoundError("Invalid discount code")
    if not discount.is_currently_active:
        raise BadRequestError("Discount code is not currently active")
    if customer_id:
        check = discount.can_be_used_by(customer_id)
        if not check["can_use"]:
            raise BadRequestError(check["reason"])
    return {"message": "Discount code is valid", "discount": _public_view(discount)}


def _applicable_items(session: Session, discount: Discount, order_items: list) -> list:
    if discount.applies_to == "all":
        return list(order_items)
    targets = set(_ids(discount.sale_items))
    if not targets:
        return []
    if discount.applies_to == "products":
        return [item for item in order_items if str(item.get("product_id")) in targets]
    collections = CollectionDao().fetchCollectionsByIds(session=session, collection_ids=to_uuid_list(targets), supplier_id=discount.supplier_id)
    member_ids = {str(p.id) for c in collections for p in c.products}
    return [item for item in order_items if str(item.get("product_id")) in member_ids]


@transactional
def apply_discount(session: Session, supplier_id: str, discount_id: str, order_items: list, order_total: float, customer_id: Optional[str] = None) -> dict:
    """
    Apply a discount to an order and count the usage.

    Percentage discounts take ``value%`` of the eligible items' total; fixed
    amounts are capped at that total. The amount is rounded to 2 decimals.

    Returns
    -------
    dict
        ``{"message", "discount_applied": {discount_id, title, code,
        discount_amount, original_total, new_total, applicable_items}}``.
    """
    if not discount_id or order_items is None or order_total is None:
        raise BadRequestError("Missing required fields")
    discount = _fetch(session, to_uuid(supplier_id), discount_id)
    if not discount.is_currently_active:
        raise BadRequestError("Discount is not currently active")
    if customer_id:
        check = discount.can_be_used_by(customer_id)
        if not check["can_use"]:
            raise BadRequestError(check["reason"])

    applicable = _applicable_items(session, discount, order_items)
    if not applicable:
        raise BadRequestError("No items are eligible for this discount")
    if discount.min_purchase_req == "min_amount" and order_total < discount.min_amount_value:
        raise BadRequestError(f"Minimum order amount of ${discount.min_amount_value:g} required")
    if discount.min_purchase_req == "min_items":
        total_items = sum(int(item.get("quantity", 0) or 0) for item in order_items)
        if total_items < discount.min_items_value:
            raise BadRequestError(f"Minimum {discount.min_items_value} items required")

    applicable_total = sum(float(item.get("price", 0) or 0) * int(item.get("quantity", 0) or 0) for item in applicable)
    if discount.discount_value_type == "percentage":
        amount = applicable_total * discount.discount_value / 100
    else:
        amount = min(discount.discount_value, applicable_total)
    amount = round(amount, 2)

    discount.use_discount(customer_id)
    return {
        "message": "Discount applied successfully",
        "discount_applied": {
            "discount_id": str(discount.id),
            "title": discount.title,
            "code": discount.code,
            "discount_amount": amount,
            "original_total": order_total,
            "new_total": round(order_total - amount, 2),
            "applicable_items": len(applicable),
        },
    }


@transactional
def discount_usage_report(session: Session, supplier_id: str, discount_id: Optional[str] = None, status: Optional[str] = None) -> dict:
    supplier_id = to_uuid(supplier_id)
    if discount_id:
        discounts = [_fetch(session, supplier_id, discount_id)]
    else:
        discounts = DiscountDao().fetchDiscounts(session=session, supplier_id=supplier_id, status=status)
    by_status = {s: len([d for d in discounts if d.status == s]) for s in DISCOUNT_STATUSES}
    return {
        "message": "Discount usage report generated successfully",
        "report": {
            "total_discounts": len(discounts),
            "active_discounts": by_status["active"],
            "total_uses": sum(d.total_uses or 0 for d in discounts),
            "discounts_by_status": by_status,
            "discount_details": [
                {
                    "id": str(d.id),
                    "title": d.title,
                    "code": d.code,
                    "discount_type": d.discount_type,
                    "status": d.status,
                    "total_uses": d.total_uses,
                    "max_total_uses": d.max_total_uses,
                    "usage_percentage": f"{d.total_uses / d.max_total_uses * 100:.1f}" if d.is_max_limit and d.max_total_uses else "Unlimited",
                    "is_currently_active": d.is_currently_active,
                }
                for d in discounts
            ],
        },
    }


@transactional
def automatic_discounts(session: Session, supplier_id: str) -> dict:
    discounts = DiscountDao().fetchDiscounts(session=session, supplier_id=to_uuid(supplier_id), status="active", discount_type="automatic")
    return {
        "message": "Automatic discounts retrieved successfully",
        "discounts": [_public_view(d) for d in discounts if d.is_currently_active],
    }


@transactional
def public_discount_by_code(session: Session, supplier_id: str, code: str) -> dict:
    if not code or not supplier_id:
        raise BadRequestError("Discount code and supplier ID are required")
    discount = DiscountDao().fetchDiscountByCode(session=session, supplier_id=to_uuid(supplier_id), code=code)
    if discount is None or discount.discount_type != "code" or discount.status != "active":
        raise NotFoundError("Invalid discount code")
    if not discount.is_currently_active:
        raise BadRequestError("Discount code is not currently active")
    return {"message": "Discount code found", "discount": _public_view(discount)}
