import pytest

from tests.conftest import body


@pytest.fixture
def vendor(api, supplier):
    payload = {"first_name": "Kim", "last_name": "Park", "email": "kim@parts.example.com", "company": "Parts Co"}
    response = api.post("/supplier/create_vendor", payload, token=supplier["token"])
    assert response.status_code == 201
    return body(response)["vendor"]


def _purchase_order(api, supplier, vendor_ref, products, **extra):
    payload = dict(vendor_ref, products=products)
    payload.update(extra)
    return api.post("/supplier/create_purchaseorder", payload, token=supplier["token"])


def test_vendor_crud(api, supplier, vendor):
    assert vendor["vendor_name"] == "Kim Park"
    duplicate = api.post("/supplier/create_vendor", {"first_name": "K", "last_name": "P", "email": "KIM@parts.example.com"}, token=supplier["token"])
    assert duplicate.json() == {"error": "Vendor with this email already exists"}
    assert api.post("/supplier/create_vendor", {"first_name": "K", "last_name": "P"}, token=supplier["token"]).json() == {"error": "Email is required"}

    updated = body(api.post("/supplier/update_vendor", {"id": vendor["id"], "city": "Busan"}, token=supplier["token"]))
    assert updated["vendor"]["city"] == "Busan"
    bad = api.post("/supplier/update_vendor", {"id": vendor["id"], "status": "retired"}, token=supplier["token"])
    assert bad.json() == {"error": "Invalid vendor status: retired"}

    api.post("/supplier/delete_vendor", {"id": vendor["id"]}, token=supplier["token"])
    assert body(api.get("/supplier/get_all_vendors", token=supplier["token"]))["vendors"] == []
    assert api.post("/supplier/get_vendor", {"id": vendor["id"]}, token=supplier["token"]).status_code == 404


def test_vendors_are_scoped_to_their_supplier(api, other_supplier, vendor):
    response = api.post("/supplier/get_vendor", {"id": vendor["id"]}, token=other_supplier["token"])
    assert response.status_code == 404
    assert response.json() == {"error": "Vendor not found"}


def test_vendor_name_is_shown_on_products(api, supplier, vendor, make_product):
    lamp = make_product("Desk Lamp", search_vendor=vendor["id"])
    listed = body(api.get("/supplier/get_all_products", token=supplier["token"]))["products_list"]
    assert listed[0]["id"] == lamp["id"]
    assert listed[0]["vendor_name"] == "Kim Park"


def test_create_purchase_order_with_vendor_id(api, supplier, vendor, make_product):
    lamp = make_product("Desk Lamp", quantity=2)
    response = _purchase_order(
        api, supplier, {"vendor_id": vendor["id"]}, [{"product_id": lamp["id"], "qty": 5, "price": 4}], calculations={"shipping": 3}
    )
    assert response.status_code == 201
    data = body(response)
    assert data["po_no"].startswith("PO-")
    po = data["purchase_order"]
    assert po["vendor_name"] == "Kim Park"
    assert po["products_count"] == 1
    assert po["calculations"]["subtotal"] == 20
    assert po["calculations"]["total"] == 23
    assert po["status"] == "pending"


def test_purchase_order_vendor_by_name(api, supplier, vendor):
    known = body(_purchase_order(api, supplier, {"vendor_name": "kim park"}, [{"qty": 1, "price": 1}]))["purchase_order"]
    assert known["vendor_id"] == vendor["id"]
    free_text = body(_purchase_order(api, supplier, {"vendor_name": "Walk-in Seller"}, [{"qty": 1, "price": 1}]))["purchase_order"]
    assert free_text["vendor_id"] is None
    assert free_text["vendor_name"] == "Walk-in Seller"


def test_purchase_order_validation(api, supplier, vendor):
    assert _purchase_order(api, supplier, {}, [{"qty": 1}]).json() == {"error": "Vendor name is required"}
    assert _purchase_order(api, supplier, {"vendor_id": vendor["id"]}, []).json() == {"error": "At least one product is required"}
    bad_date = _purchase_order(api, supplier, {"vendor_id": vendor["id"]}, [{"qty": 1, "price": 1}], estimated_arrival="next tuesday")
    assert bad_date.json() == {"error": "Invalid date format. Use ISO format."}


def test_receive_purchase_order_adds_stock(api, supplier, vendor, make_product):
    lamp = make_product("Desk Lamp", quantity=2)
    po = body(_purchase_order(api, supplier, {"vendor_id": vendor["id"]}, [{"product_id": lamp["id"], "qty": 5, "price": 4}]))

    received = body(api.post("/supplier/mark_as_recieved", {"po_no": po["po_no"]}, token=supplier["token"]))
    assert received["purchase_order"]["received_status"] is True
    assert received["purchase_order"]["status"] == "received"
    product = body(api.post("/supplier/get_product", {"id": lamp["id"]}, token=supplier["token"]))["product"]
    assert product["quantity"] == 7

    again = api.post("/supplier/mark_as_recieved", {"po_no": po["po_no"]}, token=supplier["token"])
    assert again.json() == {"error": "Purchase order has already been received"}
    locked = api.post("/supplier/update_purchaseorder", {"id": po["purchase_order_id"], "notes": "late"}, token=supplier["token"])
    assert locked.json() == {"error": "Cannot update a purchase order that has been received"}


def test_update_and_cancel_purchase_order(api, supplier, vendor):
    po = body(_purchase_order(api, supplier, {"vendor_id": vendor["id"]}, [{"qty": 2, "price": 5}]))
    updated = body(
        api.post(
            "/supplier/update_purchaseorder",
            {"id": po["purchase_order_id"], "products": [{"qty": 4, "price": 5}], "status": "ordered", "tracking_number": "TRK1"},
            token=supplier["token"],
        )
    )["purchase_order"]
    assert updated["status"] == "ordered"
    assert updated["tracking_number"] == "TRK1"
    assert updated["calculations"]["total"] == 20

    api.post("/supplier/delete_purchaseorder", {"id": po["purchase_order_id"]}, token=supplier["token"])
    cancelled = body(api.post("/supplier/get_purchaseorder", {"id": po["purchase_order_id"]}, token=supplier["token"]))
    assert cancelled["purchase_order"]["status"] == "cancelled"
    receive = api.post("/supplier/mark_as_recieved", {"po_no": po["po_no"]}, token=supplier["token"])
    assert receive.json() == {"error": "Cannot receive a cancelled purchase order"}


def test_purchase_order_numbers_are_validated(api, supplier, vendor):
    created = body(_purchase_order(api, supplier, {"vendor_id": vendor["id"]}, [{"qty": "2", "price": "4.5"}]))["purchase_order"]
    assert created["calculations"]["subtotal"] == 9

    bad_price = _purchase_order(api, supplier, {"vendor_id": vendor["id"]}, [{"qty": 1, "price": "cheap"}])
    assert bad_price.status_code == 400
    assert bad_price.json()["error"].startswith("products.0.price: Input should be a valid number")

    bad_shipping = _purchase_order(api, supplier, {"vendor_id": vendor["id"]}, [{"qty": 1, "price": 1}], calculations={"shipping": "free"})
    assert bad_shipping.json()["error"].startswith("calculations.shipping: Input should be a valid number")


def test_vendor_phone_may_be_a_number(api, supplier, vendor):
    updated = body(api.post("/supplier/update_vendor", {"id": vendor["id"], "phone": 5550100}, token=supplier["token"]))
    assert updated["vendor"]["phone"] == "5550100"
