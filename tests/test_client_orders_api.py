import pytest

from marketplace.database.core import client_order_funcs, mailer
from tests.conftest import body

CONTACT = {
    "email": "Alice@Example.com",
    "first_name": "Alice",
    "last_name": "Moreau",
    "address": "12 Rue Verte",
    "city": "Lyon",
    "country": "France",
    "postal_code": "69001",
    "phone": "555-0199",
}


@pytest.fixture
def cart(make_product, other_supplier):
    lamp = make_product("Desk Lamp", price=10, quantity=20)
    mug = make_product("Coffee Mug", owner=other_supplier, price=5, quantity=3)
    return lamp, mug


def _checkout(api, shopper, items, subtotal, **extra):
    payload = dict(CONTACT, items=items, subtotal=subtotal, shipping=6, tax=3, total=subtotal + 9)
    payload.update(extra)
    return api.post("/client/place_order", payload, token=shopper["token"])


def _product(api, owner, product_id):
    return body(api.post("/supplier/get_product", {"id": product_id}, token=owner["token"]))["product"]


def test_checkout_splits_orders_per_supplier(api, shopper, supplier, other_supplier, cart):
    lamp, mug = cart
    items = [{"product_id": lamp["id"], "quantity": 2}, {"product_id": mug["id"], "quantity": 2}]
    response = _checkout(api, shopper, items, 30)
    assert response.status_code == 201
    data = body(response)
    assert data["total_orders"] == 2
    assert data["grand_total"] == 39

    by_supplier = {o["supplier_id"]: o for o in data["orders"]}
    acme = by_supplier[supplier["id"]]
    assert acme["source"] == "client"
    assert acme["order_no"].startswith("CLT-")
    assert acme["subtotal"] == 20
    assert acme["shipping"] == 4
    assert acme["tax"] == 2
    assert acme["total"] == 26
    assert acme["shipping_address"]["formatted"] == "12 Rue Verte, Lyon, France 69001"
    assert acme["customer_details"]["email"] == "alice@example.com"
    assert by_supplier[other_supplier["id"]]["total"] == 13

    assert _product(api, supplier, lamp["id"])["quantity"] == 18
    assert _product(api, other_supplier, mug["id"])["quantity"] == 1

    customers = body(api.get("/supplier/get_all_customers", token=supplier["token"]))["customers"]
    assert customers[0]["client_id"] == shopper["id"]
    assert customers[0]["amount_spent"] == 26


def test_checkout_validation(api, shopper, cart):
    lamp, mug = cart
    missing = api.post("/client/place_order", {"email": "a@example.com", "items": []}, token=shopper["token"])
    assert missing.status_code == 400
    assert missing.json()["error"].startswith("Required fields missing")

    wrong_subtotal = _checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}], 99)
    assert wrong_subtotal.json() == {"error": "Subtotal does not match calculated total"}

    too_many = _checkout(api, shopper, [{"product_id": mug["id"], "quantity": 4}], 20)
    assert too_many.json() == {"error": "Insufficient stock for product: Coffee Mug"}

    bad_quantity = _checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 0}], 10)
    assert bad_quantity.json() == {"error": "Each item must have product_id and valid quantity"}


def test_inactive_products_cannot_be_bought(api, shopper, make_product):
    draft = make_product("Prototype", status="draft")
    response = _checkout(api, shopper, [{"product_id": draft["id"], "quantity": 1}], 10)
    assert response.json() == {"error": "Product is not available: Prototype"}


def test_client_order_listing_and_details(api, shopper, supplier, cart):
    lamp, _ = cart
    order = body(_checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}], 10))["orders"][0]

    listed = body(api.get("/client/orders", token=shopper["token"]))
    assert listed["total"] == 1
    assert body(api.get("/client/orders?status=delivered", token=shopper["token"]))["orders"] == []

    details = body(api.post("/client/order_details", {"order_id": order["id"]}, token=shopper["token"]))["order"]
    assert details["supplier"]["username"] == "acme"

    received = body(api.get("/supplier/client_orders", token=supplier["token"]))
    assert [o["id"] for o in received["orders"]] == [order["id"]]


def test_other_clients_cannot_see_an_order(api, shopper, make_user, cart):
    lamp, _ = cart
    order = body(_checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}], 10))["orders"][0]
    stranger = make_user("mallory")
    response = api.post("/client/order_details", {"order_id": order["id"]}, token=stranger["token"])
    assert response.status_code == 404


def test_cancel_restores_stock(api, shopper, supplier, cart):
    lamp, _ = cart
    order = body(_checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 5}], 50))["orders"][0]
    assert _product(api, supplier, lamp["id"])["quantity"] == 15

    cancelled = body(api.post("/client/cancel_order", {"order_id": order["id"], "reason": "changed my mind"}, token=shopper["token"]))
    assert cancelled["order"]["status"] == "cancelled"
    assert cancelled["order"]["cancel_reason"] == "changed my mind"
    assert _product(api, supplier, lamp["id"])["quantity"] == 20

    again = api.post("/client/cancel_order", {"order_id": order["id"]}, token=shopper["token"])
    assert again.json() == {"error": "Order cannot be cancelled at this stage"}


def test_returns_need_a_delivered_order(api, shopper, supplier, cart):
    lamp, _ = cart
    order = body(_checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}], 10))["orders"][0]
    early = api.post("/client/request_return", {"order_id": order["id"]}, token=shopper["token"])
    assert early.json() == {"error": "Only delivered orders can be returned"}

    delivered = api.post(
        "/supplier/update_client_order_status",
        {"order_id": order["id"], "status": "delivered", "payment_status": "paid"},
        token=supplier["token"],
    )
    assert body(delivered)["order"]["payment_status"] == "paid"

    returned = body(api.post("/client/request_return", {"order_id": order["id"], "reason": "broken"}, token=shopper["token"]))
    assert returned["return_status"] == "requested"


def test_supplier_status_updates_are_validated(api, shopper, supplier, other_supplier, cart):
    lamp, _ = cart
    order = body(_checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 2}], 20))["orders"][0]
    bad = api.post("/supplier/update_client_order_status", {"order_id": order["id"], "status": "lost"}, token=supplier["token"])
    assert bad.json() == {"error": "Invalid order status: lost"}
    foreign = api.post("/supplier/update_client_order_status", {"order_id": order["id"], "status": "shipped"}, token=other_supplier["token"])
    assert foreign.status_code == 404

    api.post("/supplier/update_client_order_status", {"order_id": order["id"], "status": "cancelled"}, token=supplier["token"])
    assert _product(api, supplier, lamp["id"])["quantity"] == 20


def test_client_browsing(api, shopper, cart):
    listed = body(api.get("/client/products?search=lamp", token=shopper["token"]))
    assert [p["title"] for p in listed["products"]] == ["Desk Lamp"]
    product = body(api.post("/client/product", {"url_handle": "coffee-mug"}, token=shopper["token"]))["product"]
    assert product["price"] == 5
    assert api.post("/client/product", {}, token=shopper["token"]).json() == {"error": "Product handle is required"}


def test_checkout_quantities_must_be_whole_numbers(api, shopper, cart):
    lamp, mug = cart
    accepted = _checkout(api, shopper, [{"product_id": lamp["id"], "quantity": "2"}], 20, tax="3")
    assert accepted.status_code == 201
    rejected = _checkout(api, shopper, [{"product_id": lamp["id"], "quantity": "two"}], 20)
    assert rejected.status_code == 400
    assert rejected.json()["error"].startswith("items.0.quantity: Input should be a valid integer")


@pytest.fixture
def confirmations(monkeypatch, shopper):
    sent = []

    def _record(email, orders):
        committed = client_order_funcs.list_client_orders(client_id=shopper["id"])["total"]
        sent.append({"email": email, "orders": [o["order_no"] for o in orders], "committed": committed})

    monkeypatch.setattr(mailer, "send_order_confirmation", _record)
    return sent


def test_confirmation_is_sent_after_the_orders_are_saved(api, shopper, cart, confirmations):
    lamp, mug = cart
    too_many = _checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}, {"product_id": mug["id"], "quantity": 9}], 55)
    assert too_many.status_code == 400
    assert confirmations == []

    data = body(_checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}, {"product_id": mug["id"], "quantity": 1}], 15))
    assert confirmations == [
        {"email": "alice@example.com", "orders": [o["order_no"] for o in data["orders"]], "committed": 2}
    ]


def test_failed_confirmation_email_keeps_the_order(api, shopper, cart, monkeypatch):
    lamp, _ = cart

    def _fail(email, orders):
        raise OSError("smtp down")

    monkeypatch.setattr(mailer, "send_order_confirmation", _fail)
    response = _checkout(api, shopper, [{"product_id": lamp["id"], "quantity": 1}], 10)
    assert response.status_code == 201
    assert body(api.get("/client/orders", token=shopper["token"]))["total"] == 1
