import pytest

from tests.conftest import body


@pytest.fixture
def sales(api, supplier, make_product):
    """Two orders for one customer in Lyon: 2 and 1 lamps at 10 each, cost 4."""
    lamp = make_product("Desk Lamp", price=10, quantity=20, cost_per_item=4)
    make_product("Spare Bulb", price=2, quantity=3)
    customer = body(
        api.post(
            "/supplier/create_customer",
            {"first_name": "Dana", "last_name": "Reyes", "email": "dana@example.com", "default_address": {"city": "Lyon"}},
            token=supplier["token"],
        )
    )["customer"]
    orders = []
    for qty in (2, 1):
        payload = {"customer_id": customer["id"], "products": [{"product_id": lamp["id"], "title": "Desk Lamp", "qty": qty, "price": 10}]}
        orders.append(body(api.post("/supplier/create_order", payload, token=supplier["token"])))
    api.post("/supplier/mark_as_delivered", {"order_no": orders[0]["order_no"]}, token=supplier["token"])
    return {"lamp": lamp, "customer": customer, "orders": orders}


def _report(api, supplier, table_name, **dates):
    return api.post("/supplier/generate_report", dict(table_name=table_name, **dates), token=supplier["token"])


def test_dashboard(api, supplier, sales):
    data = body(api.get("/supplier/dashboard", token=supplier["token"]))["dashboard_data"]
    assert data["orders_count"] == 2
    assert data["total_sale"] == 20
    assert data["total_clients"] == 1
    assert data["orders_unfullfilled"] == 1
    assert [p["title"] for p in data["product_stock"]] == ["Spare Bulb"]
    assert len(data["sales_data"]) == 6
    assert data["sales_data"][-1]["total_sales"] == 20


def test_empty_dashboard(api, supplier):
    data = body(api.get("/supplier/dashboard", token=supplier["token"]))["dashboard_data"]
    assert data["total_sale"] == 0
    assert data["orders_count"] == 0
    assert all(month["total_sales"] == 0 for month in data["sales_data"])


def test_sales_overview(api, supplier, sales):
    report = body(_report(api, supplier, "sales_overview"))["report_data"]
    assert report["total_sales"] == 30
    assert report["total_orders"] == 2
    assert report["avg_order_value"] == 15
    assert len(report["bar_data"]) == 1


def test_sales_breakdowns(api, supplier, sales):
    by_product = body(_report(api, supplier, "sales_by_product"))["report_data"]["bar_data"]
    assert by_product == [{"product": "Desk Lamp", "total_sales": 30, "order_count": 2, "quantity": 3}]

    by_customer = body(_report(api, supplier, "sales_by_customer"))["report_data"]["bar_data"]
    assert by_customer[0]["customer"] == "Dana Reyes"
    assert by_customer[0]["phone"] == "N/A"
    assert by_customer[0]["lifetime_orders_count"] == 2

    by_location = body(_report(api, supplier, "sales_by_location"))["report_data"]["bar_data"]
    assert by_location == [{"city": "Lyon", "total_sales": 30, "order_count": 2}]


def test_financial_report(api, supplier, sales):
    report = body(_report(api, supplier, "financial_reports"))["report_data"]
    assert report["total_revenue"] == 30
    assert report["total_cost"] == 12
    assert report["net_profit"] == 18


def test_cancelled_orders_are_excluded(api, supplier, sales):
    api.post("/supplier/delete_order", {"id": sales["orders"][1]["order_id"]}, token=supplier["token"])
    report = body(_report(api, supplier, "sales_overview"))["report_data"]
    assert report["total_sales"] == 20
    assert report["total_orders"] == 1


def test_inventory_reports(api, supplier, sales):
    levels = body(_report(api, supplier, "inventory_levels"))["report_data"]["bar_data"]
    assert {"title": "Desk Lamp", "current_stock": 17, "variants": 1} in levels

    valuation = body(_report(api, supplier, "inventory_valuation"))["report_data"]
    assert valuation["inventory_value"] == 68
    assert [row["product"] for row in valuation["product_breakdown"]] == ["Desk Lamp"]


def test_date_filters(api, supplier, sales):
    future = body(_report(api, supplier, "sales_overview", start_date="2999-01-01T00:00:00Z"))["report_data"]
    assert future["total_orders"] == 0
    assert future["avg_order_value"] == 0
    past = body(_report(api, supplier, "sales_overview", end_date="2000-01-01T00:00:00Z"))["report_data"]
    assert past["total_sales"] == 0


def test_report_errors(api, supplier):
    assert _report(api, supplier, "profit_and_loss").json() == {"error": "Unsupported report key"}
    assert api.post("/supplier/generate_report", {}, token=supplier["token"]).json() == {"error": "Report key is required"}
    bad_date = _report(api, supplier, "sales_overview", start_date="yesterday")
    assert bad_date.status_code == 400
    assert bad_date.json() == {"error": "Invalid date format. Use ISO format."}
