"""
Supplier dashboard and report generation.

Reports read the supplier's legacy orders, customers and products. Date
filters are ISO-8601 strings; ``start_date`` and ``end_date`` are both
inclusive.
"""

import logging
import uuid
from calendar import month_name
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.database.daos.contact_dao import CustomerDao
from marketplace.database.daos.order_dao import OrderDao
from marketplace.database.daos.product_dao import ProductDao
from marketplace.database.entities.order import Order
from marketplace.database.helpers.ids import to_uuid, to_uuid_list
from marketplace.database.helpers.timeutils import ensure_aware, parse_datetime, utcnow
from marketplace.database.helpers.transactionManagement import transactional
from marketplace.errors import BadRequestError

logger = logging.getLogger("uvicorn")

SALES_REPORTS = ("sales_overview", "sales_by_product", "sales_by_customer", "sales_by_location", "financial_reports")
INVENTORY_REPORTS = ("inventory_levels", "inventory_valuation")
REPORT_KEYS = SALES_REPORTS + INVENTORY_REPORTS


def month_start(when: datetime, months_back: int = 0) -> datetime:
    """First instant of the month ``months_back`` months before ``when``."""
    index = when.year * 12 + (when.month - 1) - months_back
    return when.replace(year=index // 12, month=index % 12 + 1, day=1, hour=0, minute=0, second=0, microsecond=0)


@transactional
def supplier_dashboard(session: Session, supplier_id: str) -> dict:
    """
    Headline numbers for the supplier home page.

    Sales only count ``completed``/``delivered`` orders; ``sales_data`` covers
    the current month and the five before it.
    """
    supplier_id = to_uuid(supplier_id)
    orders = OrderDao().fetchOrders(session=session, supplier_id=supplier_id)
    completed = [o for o in orders if o.status in ("completed", "delivered")]
    unfulfilled = [o for o in orders if o.status in ("pending", "processing", "returned")]
    products = [p for p in ProductDao().fetchProducts(session=session, supplier_id=supplier_id) if p.status == "active"]
    low_stock = [
        {"id": str(p.id), "title": p.title, "quantity": p.quantity, "min_qty": p.min_qty} for p in products if p.is_low_stock()
    ]

    now = utcnow()
    sales_data = []
    for back in range(5, -1, -1):
        start = month_start(now, back)
        end = month_start(now, back - 1)
        monthly = sum(o.total for o in completed if start <= ensure_aware(o.created_at) < end)
        sales_data.append({"month": month_name[start.month], "total_sales": round(monthly, 2)})

    return {
        "dashboard_data": {
            "message": "Supplier dashboard data retrieved successfully.",
            "total_sale": round(sum(o.total for o in completed), 2),
            "orders_count": len(orders),
            "total_clients": len({o.customer_id for o in orders}),
            "product_stock_count": len(low_stock),
            "product_stock": low_stock,
            "orders_unfullfilled": len(unfulfilled),
            "sales_data": sales_data,
        }
    }


def _parse_range(start_date, end_date):
    try:
        return parse_datetime(start_date), parse_datetime(end_date)
    except ValueError:
        raise BadRequestError("Invalid date format. Use ISO format.")


def _in_range(created_at: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    created_at = ensure_aware(created_at)
    return (start is None or created_at >= start) and (end is None or created_at <= end)


def _sales_overview(orders: List[Order]) -> dict:
    total_sales = sum(o.total for o in orders)
    by_day = {}
    for order in orders:
        day = ensure_aware(order.created_at).date().isoformat()
        by_day[day] = by_day.get(day, 0) + order.total
    return {
        "total_sales": round(total_sales, 2),
        "total_orders": len(orders),
        "avg_order_value": round(total_sales / len(orders), 2) if orders else 0,
        "bar_data": [{"day": day, "total_sales": round(total, 2)} for day, total in sorted(by_day.items())],
    }


def _sales_by_product(session: Session, orders: List[Order]) -> dict:
    stats = {}
    for order in orders:
        for item in order.products or []:
            product_id = item.get("product_id")
            if not product_id:
                continue
            entry = stats.setdefault(product_id, {"title": item.get("title", ""), "total_sales": 0.0, "order_count": 0, "quantity": 0})
            entry["total_sales"] += float(item.get("price", 0) or 0) * int(item.get("qty", 0) or 0)
            entry["order_count"] += 1
            entry["quantity"] += int(item.get("qty", 0) or 0)
    titles = {str(p.id): p.title for p in ProductDao().fetchProductsByIds(session=session, product_ids=to_uuid_list(stats))}
    bar_data = [
        {
            "product": titles.get(product_id) or entry["title"] or "Unknown",
            "total_sales": round(entry["total_sales"], 2),
            "order_count": entry["order_count"],
            "quantity": entry["quantity"],
        }
        for product_id, entry in stats.items()
    ]
    return {"bar_data": sorted(bar_data, key=lambda row: row["total_sales"], reverse=True)}


def _sales_by_customer(session: Session, orders: List[Order]) -> dict:
    stats = {}
    for order in orders:
        entry = stats.setdefault(order.customer_id, {"total_sales": 0.0, "order_count": 0})
        entry["total_sales"] += order.total
        entry["order_count"] += 1
    customers = {c.id: c for c in CustomerDao().fetchCustomersByIds(session=session, customer_ids=list(stats))}
    bar_data = []
    for customer_id, entry in stats.items():
        customer = customers.get(customer_id)
        bar_data.append(
            {
                "customer_id": str(customer_id),
                "customer": customer.customer_name if customer else "Unknown",
                "email": customer.email if customer else "N/A",
                "phone": (customer.phone_number if customer else "") or "N/A",
                "total_sales": round(entry["total_sales"], 2),
                "order_count": entry["order_count"],
                "lifetime_amount_spent": customer.amount_spent if customer else 0,
                "lifetime_orders_count": customer.orders_count if customer else 0,
            }
        )
    return {"bar_data": sorted(bar_data, key=lambda row: row["total_sales"], reverse=True)}


def _sales_by_location(session: Session, supplier_id: uuid.UUID, orders: List[Order]) -> dict:
    cities = {
        c.id: (c.default_address or {}).get("city") or "Unknown"
        for c in CustomerDao().fetchCustomers(session=session, supplier_id=supplier_id)
    }
    stats = {}
    for order in orders:
        city = cities.get(order.customer_id, "Unknown")
        entry = stats.setdefault(city, {"total_sales": 0.0, "order_count": 0})
        entry["total_sales"] += order.total
        entry["order_count"] += 1
    bar_data = [
        {"city": city, "total_sales": round(entry["total_sales"], 2), "order_count": entry["order_count"]}
        for city, entry in stats.items()
    ]
    return {"bar_data": sorted(bar_data, key=lambda row: row["total_sales"], reverse=True)}


def _financial_report(session: Session, orders: List[Order]) -> dict:
    """Revenue is the order total; cost is ``cost_per_item`` of each sold product at report time."""
    product_ids = {item["product_id"] for o in orders for item in (o.products or []) if item.get("product_id")}
    costs = {str(p.id): p.cost_per_item or 0 for p in ProductDao().fetchProductsByIds(session=session, product_ids=to_uuid_list(product_ids))}
    monthly = {}
    for order in orders:
        created_at = ensure_aware(order.created_at)
        key = (created_at.year, created_at.month)
        entry = monthly.setdefault(key, {"revenue": 0.0, "cost": 0.0})
        entry["revenue"] += order.total
        entry["cost"] += sum(costs.get(item.get("product_id"), 0) * int(item.get("qty", 0) or 0) for item in order.products or [])
    total_revenue = sum(e["revenue"] for e in monthly.values())
    total_cost = sum(e["cost"] for e in monthly.values())
    return {
        "net_profit": round(total_revenue - total_cost, 2),
        "total_revenue": round(total_revenue, 2),
        "total_cost": round(total_cost, 2),
        "bar_data": [
            {
                "month": f"{month_name[month]} {year}",
                "net_profit": round(e["revenue"] - e["cost"], 2),
                "revenue": round(e["revenue"], 2),
                "cost": round(e["cost"], 2),
            }
            for (year, month), e in sorted(monthly.items())
        ],
    }


def _inventory_levels(products) -> dict:
    by_title = {}
    for product in products:
        entry = by_title.setdefault(product.title or "Unnamed Product", {"current_stock": 0, "variants": 0})
        entry["current_stock"] += product.quantity or 0
        entry["variants"] += max(1, len(product.variants or []))
    return {"bar_data": [{"title": title, **entry} for title, entry in sorted(by_title.items())]}


def _inventory_valuation(products) -> dict:
    breakdown = []
    for product in products:
        value = (product.quantity or 0) * (product.cost_per_item or 0)
        if value > 0:
            breakdown.append(
                {"product": product.title, "quantity": product.quantity, "cost_per_item": product.cost_per_item, "value": round(value, 2)}
            )
    breakdown.sort(key=lambda row: row["value"], reverse=True)
    return {"inventory_value": round(sum(row["value"] for row in breakdown), 2), "product_breakdown": breakdown}


@transactional
def generate_report(session: Session, supplier_id: str, table_name: str, start_date=None, end_date=None) -> dict:
    """
    Build one report for the supplier.

    Parameters
    ----------
    table_name : str
        One of :data:`REPORT_KEYS`.
    start_date, end_date : str | None
        Optional inclusive ISO-8601 bounds on order/product creation time.

    Raises
    ------
    BadRequestError
        Missing or unknown report key, or an unparseable date.
    """
    if not table_name:
        raise BadRequestError("Report key is required")
    start, end = _parse_range(start_date, end_date)
    if table_name not in REPORT_KEYS:
        raise BadRequestError("Unsupported report key")
    supplier_id = to_uuid(supplier_id)

    if table_name in SALES_REPORTS:
        orders = [
            o
            for o in OrderDao().fetchOrders(session=session, supplier_id=supplier_id, created_from=start)
            if o.status != "cancelled" and _in_range(o.created_at, start, end)
        ]
        if table_name == "sales_overview":
            result = _sales_overview(orders)
        elif table_name == "sales_by_product":
            result = _sales_by_product(session, orders)
        elif table_name == "sales_by_customer":
            result = _sales_by_customer(session, orders)
        elif table_name == "sales_by_location":
            result = _sales_by_location(session, supplier_id, orders)
        else:
            result = _financial_report(session, orders)
    else:
        products = [
            p for p in ProductDao().fetchProducts(session=session, supplier_id=supplier_id) if _in_range(p.created_at, start, end)
        ]
        result = _inventory_levels(products) if table_name == "inventory_levels" else _inventory_valuation(products)

    logger.info(f"Report {table_name} generated for supplier {supplier_id}")
    return {"message": "Data retrieved successfully", "report_data": result}
