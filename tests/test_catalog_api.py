import os
import re

from marketplace.api.encryption import encrypt_data
from marketplace.database.core.catalog_funcs import PRODUCT_HANDLE_TAKEN
from marketplace.database.config.config import settings
from tests.conftest import body

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _multipart(api, path, fields, token, files=None):
    return api.post(path, token=token, data={"data": encrypt_data(fields)}, files=files)


def test_create_product_with_media(api, supplier, client):
    files = [("media", ("front.png", PNG, "image/png")), ("media", ("back.png", PNG, "image/png"))]
    response = _multipart(api, "/supplier/create_product", {"title": "Linen Shirt", "price": 40, "cost_per_item": 10}, supplier["token"], files)
    assert response.status_code == 201
    product = body(response)["product"]
    assert product["url_handle"] == "linen-shirt"
    assert product["profit"] == 30
    assert product["margin"] == 75
    assert len(product["media"]) == 2
    path = product["media"][0]
    assert path.startswith("/uploads/products/") and path.endswith(".png")
    assert os.path.exists(os.path.join(settings.UPLOAD_DIR, "products", os.path.basename(path)))
    assert client.get(path).content == PNG


def test_non_image_upload_is_rejected(api, supplier):
    files = [("media", ("notes.txt", b"hello", "text/plain"))]
    response = _multipart(api, "/supplier/create_product", {"title": "Notebook"}, supplier["token"], files)
    assert response.status_code == 400
    assert response.json() == {"error": "Only image files are allowed"}


def test_product_title_and_handle_rules(api, supplier, make_product):
    assert _multipart(api, "/supplier/create_product", {"price": 5}, supplier["token"]).json() == {"error": "Product title is required"}
    make_product("Desk Lamp")
    duplicate = _multipart(api, "/supplier/create_product", {"title": "Desk  Lamp"}, supplier["token"])
    assert duplicate.status_code == 400
    assert duplicate.json() == {"error": PRODUCT_HANDLE_TAKEN}


def test_get_update_and_list_products(api, supplier, make_product):
    lamp = make_product("Desk Lamp", category="Lighting")
    fetched = body(api.post("/supplier/get_product", {"id": lamp["id"]}, token=supplier["token"]))
    assert fetched["product"]["category"] == "Lighting"

    updated = _multipart(api, "/supplier/update_product", {"id": lamp["id"], "title": "Floor Lamp", "price": 80}, supplier["token"])
    assert updated.status_code == 200
    product = body(updated)["product"]
    assert product["url_handle"] == "floor-lamp"
    assert product["price"] == 80

    listed = body(api.get("/supplier/get_all_products", token=supplier["token"]))
    assert [p["title"] for p in listed["products_list"]] == ["Floor Lamp"]


def test_update_requires_an_id(api, supplier):
    response = _multipart(api, "/supplier/update_product", {"title": "x"}, supplier["token"])
    assert response.json() == {"error": "Product ID is required"}


def test_products_are_scoped_to_their_supplier(api, make_product, other_supplier):
    lamp = make_product("Desk Lamp")
    response = api.post("/supplier/get_product", {"id": lamp["id"]}, token=other_supplier["token"])
    assert response.status_code == 404
    assert response.json() == {"error": "Product not found"}
    assert body(api.get("/supplier/get_all_products", token=other_supplier["token"]))["products_list"] == []


def test_invalid_product_id(api, supplier):
    response = api.post("/supplier/get_product", {"id": "not-a-uuid"}, token=supplier["token"])
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid id"}


def test_delete_archives_product(api, supplier, make_product):
    lamp = make_product("Desk Lamp")
    deleted = body(api.post("/supplier/delete_product", {"id": lamp["id"]}, token=supplier["token"]))
    assert deleted["message"] == "Product deleted successfully"
    assert body(api.get("/supplier/get_all_products", token=supplier["token"]))["products_list"] == []
    archived = body(api.post("/supplier/get_product", {"id": lamp["id"]}, token=supplier["token"]))
    assert archived["product"]["status"] == "archived"


def test_search_products(api, supplier, make_product):
    make_product("Desk Lamp")
    make_product("Coffee Mug")
    found = body(api.post("/supplier/search_product", {"query": "lamp"}, token=supplier["token"]))
    assert [p["title"] for p in found["products_list"]] == ["Desk Lamp"]
    assert api.post("/supplier/search_product", {"query": " "}, token=supplier["token"]).json() == {"error": "Search query is required"}


def test_manual_collection(api, supplier, make_product):
    lamp = make_product("Desk Lamp")
    make_product("Coffee Mug")
    files = [("collection_images", ("cover.jpg", PNG, "image/jpeg"))]
    response = _multipart(api, "/supplier/create_collection", {"title": "Office", "product_list": [lamp["id"]]}, supplier["token"], files)
    assert response.status_code == 201
    collection = body(response)["collection"]
    assert collection["collection_type"] == "manual"
    assert collection["product_list"] == [lamp["id"]]
    assert collection["collection_images"][0].startswith("/uploads/collections/")

    product = body(api.post("/supplier/get_product", {"id": lamp["id"]}, token=supplier["token"]))["product"]
    assert product["search_collection"] == [collection["id"]]


def test_smart_collection_tracks_product_changes(api, supplier, make_product):
    make_product("Desk Lamp", category="Lighting")
    fields = {
        "title": "Lights",
        "collection_type": "smart",
        "smart_operator": "all",
        "smart_conditions": [{"field": "category", "operator": "equals", "value": "lighting"}],
    }
    collection = body(_multipart(api, "/supplier/create_collection", fields, supplier["token"]))["collection"]
    assert collection["products_count"] == 1

    make_product("Ceiling Light", category="Lighting")
    fetched = body(api.post("/supplier/get_collection", {"id": collection["id"]}, token=supplier["token"]))["collection"]
    assert sorted(p["title"] for p in fetched["products"]) == ["Ceiling Light", "Desk Lamp"]


def test_smart_collection_rejects_bad_rules(api, supplier):
    fields = {"title": "Broken", "collection_type": "smart", "smart_conditions": [{"field": "color", "operator": "equals", "value": "red"}]}
    response = _multipart(api, "/supplier/create_collection", fields, supplier["token"])
    assert response.status_code == 400
    assert response.json() == {"error": "Unsupported smart condition field: color"}


def test_delete_and_search_collections(api, supplier):
    office = body(_multipart(api, "/supplier/create_collection", {"title": "Office"}, supplier["token"]))["collection"]
    _multipart(api, "/supplier/create_collection", {"title": "Kitchen"}, supplier["token"])
    found = body(api.post("/supplier/search_collection", {"query": "off"}, token=supplier["token"]))
    assert [c["title"] for c in found["collections_list"]] == ["Office"]

    api.post("/supplier/delete_collection", {"id": office["id"]}, token=supplier["token"])
    listed = body(api.get("/supplier/get_all_collections", token=supplier["token"]))
    assert [c["title"] for c in listed["collections_list"]] == ["Kitchen"]


def test_public_catalog_lists_active_products(api, make_product):
    make_product("Desk Lamp", category="Lighting", cost_per_item=4)
    make_product("Draft Lamp", status="draft")
    listed = body(api.get("/public/products"))
    assert [p["title"] for p in listed["products"]] == ["Desk Lamp"]
    assert listed["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    product = body(api.get("/public/products/desk-lamp"))["product"]
    assert product["title"] == "Desk Lamp"
    assert "cost_per_item" not in product and "margin" not in product
    assert api.get("/public/products/draft-lamp").json() == {"error": "Product not found"}


def _stored(kind):
    directory = os.path.join(settings.UPLOAD_DIR, kind)
    return set(os.listdir(directory)) if os.path.isdir(directory) else set()


def test_numeric_strings_are_accepted(api, supplier):
    fields = {"title": "Wool Scarf", "price": "19.99", "quantity": "5", "track_quantity": "true"}
    response = _multipart(api, "/supplier/create_product", fields, supplier["token"])
    assert response.status_code == 201
    product = body(response)["product"]
    assert product["price"] == 19.99
    assert product["quantity"] == 5
    assert product["track_quantity"] is True


def test_non_numeric_values_are_rejected(api, supplier, make_product):
    response = _multipart(api, "/supplier/create_product", {"title": "Wool Scarf", "price": "abc"}, supplier["token"])
    assert response.status_code == 400
    assert response.json()["error"].startswith("price: Input should be a valid number")

    lamp = make_product("Desk Lamp")
    update = _multipart(api, "/supplier/update_product", {"id": lamp["id"], "quantity": "lots"}, supplier["token"])
    assert update.status_code == 400
    assert update.json()["error"].startswith("quantity: Input should be a valid integer")


def test_title_without_letters_gets_a_generated_handle(api, supplier):
    product = body(_multipart(api, "/supplier/create_product", {"title": "!!!"}, supplier["token"]))["product"]
    assert re.fullmatch(r"product-[0-9a-f]{8}", product["url_handle"])
    other = body(_multipart(api, "/supplier/create_product", {"title": "???"}, supplier["token"]))["product"]
    assert other["url_handle"] != product["url_handle"]

    collection = body(_multipart(api, "/supplier/create_collection", {"title": "***"}, supplier["token"]))["collection"]
    assert re.fullmatch(r"collection-[0-9a-f]{8}", collection["url_handle"])


def test_rejected_product_keeps_no_uploads(api, supplier, make_product):
    make_product("Desk Lamp")
    before = _stored("products")
    files = [("media", ("front.png", PNG, "image/png"))]
    duplicate = _multipart(api, "/supplier/create_product", {"title": "Desk Lamp"}, supplier["token"], files)
    assert duplicate.json() == {"error": PRODUCT_HANDLE_TAKEN}
    assert _stored("products") == before

    mixed = [("media", ("front.png", PNG, "image/png")), ("media", ("notes.txt", b"hello", "text/plain"))]
    rejected = _multipart(api, "/supplier/create_product", {"title": "Notebook"}, supplier["token"], mixed)
    assert rejected.json() == {"error": "Only image files are allowed"}
    assert _stored("products") == before


def test_rejected_collection_keeps_no_uploads(api, supplier):
    before = _stored("collections")
    fields = {"title": "Broken", "collection_type": "smart", "smart_conditions": [{"field": "color", "operator": "equals", "value": "red"}]}
    files = [("collection_images", ("cover.png", PNG, "image/png"))]
    response = _multipart(api, "/supplier/create_collection", fields, supplier["token"], files)
    assert response.status_code == 400
    assert _stored("collections") == before
