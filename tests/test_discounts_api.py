import pytest

from tests.conftest import body

ITEMS = [{"product_id": "p-1", "price": 10, "quantity": 3}]


@pytest.fixture
def add_discount(api, supplier):
    def _add(**fields):
        payload = {"discount_type": "code", "title": "Spring", "code": "spring10", "discount_value_type": "percentage", "discount_value": 10}
        payload.update(fields)
        return api.post("/supplier/add_discount", payload, token=supplier["token"])

    return _add


def _apply(api, supplier, discount_id, items=ITEMS, total=30, **extra):
    payload = {"discount_id": discount_id, "order_items": items, "order_total": total}
    payload.update(extra)
    return api.post("/supplier/apply_discount", payload, token=supplier["token"])


def test_add_discount_normalizes_code(add_discount):
    response = add_discount()
    assert response.status_code == 201
    discount = body(response)["discount"]
    assert discount["code"] == "SPRING10"
    assert discount["status"] == "active"
    assert discount["is_currently_active"] is True


def test_add_discount_validation(add_discount):
    add_discount()
    assert add_discount(code="Spring10").json() == {"error": "Discount code already exists"}
    assert add_discount(title="").json() == {"error": "Missing required fields"}
    assert add_discount(code="big", discount_value=150).json() == {"error": "Percentage discount must be between 0 and 100"}
    assert add_discount(code="typo", discount_value_type="bogus").json() == {"error": "Invalid discount value type: bogus"}
    bad_dates = add_discount(code="dates", start_datetime="2030-01-10T00:00:00Z", is_end_date=True, end_datetime="2030-01-01T00:00:00Z")
    assert bad_dates.json() == {"error": "End date must be after start date"}


def test_sale_items_must_belong_to_the_supplier(add_discount, make_product, other_supplier):
    foreign = make_product("Their Lamp", owner=other_supplier)
    response = add_discount(applies_to="products", sale_items=[foreign["id"]])
    assert response.json() == {"error": "Some products not found or don't belong to you"}


def test_list_get_update_delete(api, supplier, add_discount):
    discount = body(add_discount())["discount"]
    add_discount(code="summer", title="Summer")
    listed = body(api.get("/supplier/get_discounts?limit=1", token=supplier["token"]))
    assert len(listed["discounts"]) == 1
    assert listed["pagination"]["total"] == 2
    assert listed["pagination"]["pages"] == 2

    updated = body(api.post("/supplier/update_discount", {"id": discount["id"], "title": "Spring Sale", "code": "spring15"}, token=supplier["token"]))
    assert updated["discount"]["title"] == "Spring Sale"
    assert updated["discount"]["code"] == "SPRING15"
    clash = api.post("/supplier/update_discount", {"id": discount["id"], "code": "summer"}, token=supplier["token"])
    assert clash.json() == {"error": "Discount code already exists"}

    assert body(api.post("/supplier/delete_discount", {"id": discount["id"]}, token=supplier["token"]))["message"] == "Discount deleted successfully"
    assert api.post("/supplier/get_discount", {"id": discount["id"]}, token=supplier["token"]).status_code == 404


def test_toggle_and_validate_code(api, supplier, add_discount):
    discount = body(add_discount())["discount"]
    valid = body(api.post("/supplier/validate_discount_code", {"code": "spring10"}, token=supplier["token"]))
    assert valid["discount"]["id"] == discount["id"]
    assert "customer_uses" not in valid["discount"]

    toggled = body(api.post("/supplier/toggle_discount_status", {"id": discount["id"]}, token=supplier["token"]))
    assert toggled["discount"]["status"] == "inactive"
    assert toggled["message"] == "Discount deactivated successfully"
    inactive = api.post("/supplier/validate_discount_code", {"code": "SPRING10"}, token=supplier["token"])
    assert inactive.json() == {"error": "Discount code is not currently active"}

    unknown = api.post("/supplier/validate_discount_code", {"code": "nope"}, token=supplier["token"])
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Invalid discount code"}


def test_apply_percentage_discount(api, supplier, add_discount):
    discount = body(add_discount())["discount"]
    applied = body(_apply(api, supplier, discount["id"], customer_id="cust-1"))["discount_applied"]
    assert applied["discount_amount"] == 3
    assert applied["new_total"] == 27
    assert applied["applicable_items"] == 1

    fetched = body(api.post("/supplier/get_discount", {"id": discount["id"]}, token=supplier["token"]))["discount"]
    assert fetched["total_uses"] == 1
    assert fetched["customer_uses"] == {"cust-1": 1}


def test_fixed_amount_is_capped(api, supplier, add_discount):
    discount = body(add_discount(code="fifty", discount_value_type="fixed_amount", discount_value=50))["discount"]
    applied = body(_apply(api, supplier, discount["id"]))["discount_applied"]
    assert applied["discount_amount"] == 30
    assert applied["new_total"] == 0


def test_minimum_purchase_requirements(api, supplier, add_discount):
    by_amount = body(add_discount(code="min50", min_purchase_req="min_amount", min_amount_value=50))["discount"]
    assert _apply(api, supplier, by_amount["id"]).json() == {"error": "Minimum order amount of $50 required"}
    by_items = body(add_discount(code="min5", min_purchase_req="min_items", min_items_value=5))["discount"]
    assert _apply(api, supplier, by_items["id"]).json() == {"error": "Minimum 5 items required"}


def test_product_scoped_discount(api, supplier, add_discount, make_product):
    lamp = make_product("Desk Lamp")
    discount = body(add_discount(applies_to="products", sale_items=[lamp["id"]]))["discount"]
    assert _apply(api, supplier, discount["id"]).json() == {"error": "No items are eligible for this discount"}
    items = [{"product_id": lamp["id"], "price": 10, "quantity": 2}, {"product_id": "other", "price": 5, "quantity": 1}]
    applied = body(_apply(api, supplier, discount["id"], items=items, total=25))["discount_applied"]
    assert applied["discount_amount"] == 2
    assert applied["applicable_items"] == 1


def test_usage_limit_and_report(api, supplier, add_discount):
    discount = body(add_discount(is_max_limit=True, max_total_uses=1))["discount"]
    _apply(api, supplier, discount["id"])
    assert _apply(api, supplier, discount["id"]).json() == {"error": "Discount is not currently active"}
    toggle = api.post("/supplier/toggle_discount_status", {"id": discount["id"]}, token=supplier["token"])
    assert toggle.json() == {"error": "Cannot toggle a discount that is used up"}

    report = body(api.post("/supplier/discount_usage_report", {}, token=supplier["token"]))["report"]
    assert report["total_discounts"] == 1
    assert report["total_uses"] == 1
    assert report["discounts_by_status"]["used_up"] == 1
    assert report["discount_details"][0]["usage_percentage"] == "100.0"


def test_one_use_per_customer(api, supplier, add_discount):
    discount = body(add_discount(one_per_customer=True))["discount"]
    _apply(api, supplier, discount["id"], customer_id="cust-1")
    again = _apply(api, supplier, discount["id"], customer_id="cust-1")
    assert again.json() == {"error": "Discount already used by this customer"}
    check = api.post("/supplier/validate_discount_code", {"code": "spring10", "customer_id": "cust-1"}, token=supplier["token"])
    assert check.json() == {"error": "Discount already used by this customer"}


def test_automatic_discounts(api, supplier, add_discount):
    add_discount(discount_type="automatic", title="Autumn", code=None)
    add_discount()
    automatic = body(api.get("/supplier/get_automatic_discounts", token=supplier["token"]))["discounts"]
    assert [d["title"] for d in automatic] == ["Autumn"]
    assert automatic[0]["code"] is None


def test_client_lookup_by_code(api, supplier, shopper, add_discount):
    add_discount()
    found = body(api.post("/client/discount_by_code", {"supplier_id": supplier["id"], "code": "spring10"}, token=shopper["token"]))
    assert found["discount"]["code"] == "SPRING10"
    missing = api.post("/client/discount_by_code", {"code": "spring10"}, token=shopper["token"])
    assert missing.json() == {"error": "Supplier ID and discount code are required"}


def test_discount_value_must_be_numeric(api, supplier, add_discount):
    response = add_discount(discount_value="abc")
    assert response.status_code == 400
    assert response.json()["error"].startswith("discount_value: Input should be a valid number")

    created = body(add_discount(discount_value="15", is_max_limit="true", max_total_uses="3"))["discount"]
    assert created["discount_value"] == 15
    assert created["max_total_uses"] == 3

    update = api.post("/supplier/update_discount", {"id": created["id"], "min_items_value": "a few"}, token=supplier["token"])
    assert update.status_code == 400
    assert update.json()["error"].startswith("min_items_value: Input should be a valid integer")
