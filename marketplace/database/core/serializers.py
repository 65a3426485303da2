"""
Response shaping for core service functions.

Service functions return plain dicts (the session is closed once the
transaction commits), so every entity is flattened here: ids become strings,
datetimes become ISO-8601 UTC strings.

Both order models go through :func:`order_to_dict`. Legacy ``Order`` and
self-service ``ClientOrder`` share one summary shape (``source`` tells them
apart) followed by the fields specific to each model.
"""

from typing import Optional

from marketplace.database.entities.client_order import ClientOrder
from marketplace.database.entities.collection import Collection
from marketplace.database.entities.customer import Customer
from marketplace.database.entities.discount import Discount
from marketplace.database.entities.order import Order
from marketplace.database.entities.product import Product
from marketplace.database.entities.purchase_order import PurchaseOrder
from marketplace.database.entities.site_builder import SupplierSiteBuilder
from marketplace.database.entities.user import User
from marketplace.database.entities.vendor import Vendor
from marketplace.database.helpers.ids import id_str
from marketplace.database.helpers.timeutils import isoformat


def user_to_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "user_type": user.user_type,
        "agree_terms": user.agree_terms,
        "is_email_verified": user.is_email_verified,
        "company": user.company,
        "access_roles": list(user.access_roles or []),
        "first_login": user.first_login,
        "last_login": isoformat(user.last_login),
        "created_at": isoformat(user.created_at),
    }


def admin_to_dict(user: User) -> dict:
    data = user_to_dict(user)
    data.update(
        {
            "is_admin": user.is_admin,
            "is_super_admin": user.is_super_admin,
            "admin_role": user.admin_role,
            "admin_permissions": list(user.admin_permissions or []),
            "is_deactivated": user.is_deactivated,
            "deactivated_at": isoformat(user.deactivated_at),
            "created_by": id_str(user.created_by),
        }
    )
    return data


def product_to_dict(product: Product, vendor_name: Optional[str] = None) -> dict:
    return {
        "id": str(product.id),
        "supplier_id": str(product.supplier_id),
        "title": product.title,
        "url_handle": product.url_handle,
        "description": product.description,
        "category": product.category,
        "media": list(product.media or []),
        "price": product.price,
        "compare_at_price": product.compare_at_price,
        "tax": product.tax,
        "cost_per_item": product.cost_per_item,
        "profit": product.profit,
        "margin": product.margin,
        "status": product.status,
        "quantity": product.quantity,
        "min_qty": product.min_qty,
        "variant_option": product.variant_option,
        "variants": list(product.variants or []),
        "physical_product": product.physical_product,
        "track_quantity": product.track_quantity,
        "continue_out_of_stock": product.continue_out_of_stock,
        "weight": product.weight,
        "units": product.units,
        "region": product.region,
        "hs_code": product.hs_code,
        "address": product.address,
        "search_vendor": product.search_vendor,
        "vendor_name": vendor_name if vendor_name is not None else "",
        "search_tags": list(product.search_tags or []),
        "search_collection": [str(c.id) for c in product.collections if c.status != "archived"],
        "page_title": product.page_title,
        "meta_description": product.meta_description,
        "created_at": isoformat(product.created_at),
        "updated_at": isoformat(product.updated_at),
    }


def product_card(product: Product) -> dict:
    """Compact product shape for storefronts, collections and order lines."""
    return {
        "id": str(product.id),
        "supplier_id": str(product.supplier_id),
        "title": product.title,
        "url_handle": product.url_handle,
        "price": product.price,
        "compare_at_price": product.compare_at_price,
        "media": list(product.media or []),
        "category": product.category,
        "quantity": product.quantity,
        "status": product.status,
    }


def collection_to_dict(collection: Collection, include_products: bool = False) -> dict:
    members = [p for p in collection.products if p.status != "archived"]
    data = {
        "id": str(collection.id),
        "supplier_id": str(collection.supplier_id),
        "title": collection.title,
        "url_handle": collection.url_handle,
        "description": collection.description,
        "collection_type": collection.collection_type,
        "collection_images": list(collection.collection_images or []),
        "smart_operator": collection.smart_operator,
        "smart_conditions": list(collection.smart_conditions or []),
        "status": collection.status,
        "page_title": collection.page_title,
        "meta_description": collection.meta_description,
        "product_list": [str(p.id) for p in members],
        "products_count": len(members),
        "created_at": isoformat(collection.created_at),
        "updated_at": isoformat(collection.updated_at),
    }
    if include_products:
        data["products"] = [product_card(p) for p in members]
    return data


def discount_to_dict(discount: Discount) -> dict:
    return {
        "id": str(discount.id),
        "supplier_id": str(discount.supplier_id),
        "discount_type": discount.discount_type,
        "code": discount.code,
        "title": discount.title,
        "discount_value_type": discount.discount_value_type,
        "discount_value": discount.discount_value,
        "applies_to": discount.applies_to,
        "sale_items": list(discount.sale_items or []),
        "start_datetime": isoformat(discount.start_datetime),
        "is_end_date": discount.is_end_date,
        "end_datetime": isoformat(discount.end_datetime),
        "eligibility": discount.eligibility,
        "customer_list": list(discount.customer_list or []),
        "min_purchase_req": discount.min_purchase_req,
        "min_amount_value": discount.min_amount_value,
        "min_items_value": discount.min_items_value,
        "is_max_limit": discount.is_max_limit,
        "max_total_uses": discount.max_total_uses,
        "one_per_customer": discount.one_per_customer,
        "customer_buy_spend": discount.customer_buy_spend,
        "buy_spend_quantity": discount.buy_spend_quantity,
        "buy_spend_amount": discount.buy_spend_amount,
        "buy_spend_any_item_from": discount.buy_spend_any_item_from,
        "buy_spend_sale_items": list(discount.buy_spend_sale_items or []),
        "gets_quantity": discount.gets_quantity,
        "gets_any_item_from": discount.gets_any_item_from,
        "gets_sale_items": list(discount.gets_sale_items or []),
        "discounted_value": discount.discounted_value,
        "percentage": discount.percentage,
        "amount_off_each": discount.amount_off_each,
        "is_max_users_per_order": discount.is_max_users_per_order,
        "max_users": discount.max_users,
        "total_uses": discount.total_uses,
        "customer_uses": dict(discount.customer_uses or {}),
        "status": discount.status,
        "is_currently_active": discount.is_currently_active,
        "created_at": isoformat(discount.created_at),
        "updated_at": isoformat(discount.updated_at),
    }


def customer_to_dict(customer: Customer) -> dict:
    return {
        "id": str(customer.id),
        "supplier_id": str(customer.supplier_id),
        "client_id": id_str(customer.client_id),
        "customer_name": customer.customer_name,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "language": customer.language,
        "email": customer.email,
        "phone_number": customer.phone_number,
        "email_subscribe": customer.email_subscribe,
        "msg_subscribe": customer.msg_subscribe,
        "default_address": dict(customer.default_address or {}),
        "notes": customer.notes,
        "tags": customer.tags,
        "amount_spent": customer.amount_spent,
        "orders_count": customer.orders_count,
        "status": customer.status,
        "created_at": isoformat(customer.created_at),
    }


def vendor_to_dict(vendor: Vendor) -> dict:
    return {
        "id": str(vendor.id),
        "supplier_id": str(vendor.supplier_id),
        "vendor_name": vendor.vendor_name,
        "first_name": vendor.first_name,
        "last_name": vendor.last_name,
        "email": vendor.email,
        "phone": vendor.phone,
        "company": vendor.company,
        "address": vendor.address,
        "apartment": vendor.apartment,
        "city": vendor.city,
        "postal_code": vendor.postal_code,
        "country": vendor.country,
        "status": vendor.status,
        "created_at": isoformat(vendor.created_at),
    }


def purchase_order_to_dict(po: PurchaseOrder) -> dict:
    return {
        "id": str(po.id),
        "po_no": po.po_no,
        "supplier_id": str(po.supplier_id),
        "vendor_id": id_str(po.vendor_id),
        "vendor_name": po.vendor_name,
        "supplier_name": po.supplier_name,
        "payment_terms": po.payment_terms,
        "destination": po.destination,
        "supplier_currency": po.supplier_currency,
        "estimated_arrival": isoformat(po.estimated_arrival),
        "shipping_carrier": po.shipping_carrier,
        "tracking_number": po.tracking_number,
        "reference_number": po.reference_number,
        "received_status": po.received_status,
        "received_at": isoformat(po.received_at),
        "tags": list(po.tags or []),
        "notes": po.notes,
        "products": list(po.products or []),
        "products_count": po.products_count,
        "calculations": dict(po.calculations or {}),
        "status": po.status,
        "created_at": isoformat(po.created_at),
        "updated_at": isoformat(po.updated_at),
    }


def order_to_dict(order, customer_name: Optional[str] = None) -> dict:
    """
    Shape either order model.

    Common keys: ``id, order_no, source ("legacy" | "client"), supplier_id,
    customer_id, customer_name, status, payment_status, items, item_count,
    subtotal, tax, shipping, discount, total, currency, created_at, updated_at``.
    Each item has ``product_id, title, price, quantity, total``.
    """
    if isinstance(order, ClientOrder):
        items = [
            {
                "product_id": item.get("product_id"),
                "title": item.get("title", ""),
                "price": item.get("price", 0),
                "quantity": item.get("quantity", 0),
                "total": item.get("total", 0),
                "image": item.get("image"),
            }
            for item in (order.items or [])
        ]
        data = _order_summary(
            order,
            source="client",
            customer_id=str(order.client_id),
            customer_name=customer_name if customer_name is not None else _details_name(order.customer_details),
            payment_status=order.payment_status,
            items=items,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping=order.shipping,
            discount=0,
            total=order.total,
            currency="USD",
            created_at=order.placed_at,
        )
        data.update(
            {
                "client_id": str(order.client_id),
                "payment_method": order.payment_method,
                "shipping_address": dict(order.shipping_address or {}),
                "customer_details": dict(order.customer_details or {}),
                "notes": order.notes,
                "cancel_reason": order.cancel_reason,
                "return_reason": order.return_reason,
            }
        )
        return data

    calculations = dict(order.calculations or {})
    items = [
        {
            "product_id": item.get("product_id"),
            "title": item.get("title", ""),
            "price": item.get("price", 0),
            "quantity": item.get("qty", 0),
            "total": round((item.get("price", 0) or 0) * (item.get("qty", 0) or 0), 2),
            "image": (item.get("media") or [None])[0],
        }
        for item in (order.products or [])
    ]
    data = _order_summary(
        order,
        source="legacy",
        customer_id=str(order.customer_id),
        customer_name=customer_name or "",
        payment_status="paid" if order.payment_status else "pending",
        items=items,
        subtotal=calculations.get("subtotal", 0),
        tax=calculations.get("total_tax", 0),
        shipping=0,
        discount=calculations.get("total_discount", 0),
        total=calculations.get("total", 0),
        currency=order.market_price,
        created_at=order.created_at,
    )
    data.update(
        {
            "products": list(order.products or []),
            "calculations": calculations,
            "notes": order.notes,
            "tags": list(order.tags or []),
            "channel": order.channel,
            "payment_due_later": order.payment_due_later,
            "shipping_address": order.shipping_address,
            "bill_paid": order.bill_paid,
            "is_paid": order.payment_status,
            "fulfillment_status": order.fulfillment_status,
            "delivery_status": order.delivery_status,
        }
    )
    return data


def _order_summary(order, source, customer_id, customer_name, payment_status, items, subtotal, tax, shipping, discount, total, currency, created_at) -> dict:
    return {
        "id": str(order.id),
        "order_no": order.order_no,
        "source": source,
        "supplier_id": str(order.supplier_id),
        "customer_id": customer_id,
        "customer_name": customer_name,
        "status": order.status,
        "payment_status": payment_status,
        "items": items,
        "item_count": sum(int(i.get("quantity") or 0) for i in items),
        "subtotal": subtotal,
        "tax": tax,
        "shipping": shipping,
        "discount": discount,
        "total": total,
        "currency": currency,
        "created_at": isoformat(created_at),
        "updated_at": isoformat(order.updated_at),
    }


def order_created_at(order):
    """Creation time of either order model."""
    return order.placed_at if isinstance(order, ClientOrder) else order.created_at


def order_total(order) -> float:
    if isinstance(order, ClientOrder):
        return float(order.total or 0)
    return float((order.calculations or {}).get("total", 0) or 0)


def site_to_dict(site: SupplierSiteBuilder) -> dict:
    return {
        "id": str(site.id),
        "supplier_id": str(site.supplier_id),
        "sections": sorted(list(site.sections or []), key=lambda s: s.get("position", 0)),
        "hot_products": sorted(list(site.hot_products or []), key=lambda h: h.get("position", 0)),
        "about_us": site.about_us,
        "hero_banners": sorted(list(site.hero_banners or []), key=lambda b: b.get("position", 0)),
        "theme": dict(site.theme or {}),
        "is_published": site.is_published,
        "updated_at": isoformat(site.updated_at),
    }


def _details_name(details) -> str:
    details = details or {}
    return f"{details.get('first_name', '')} {details.get('last_name', '')}".strip()
