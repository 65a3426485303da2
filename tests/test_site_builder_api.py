from tests.conftest import body

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _save(api, supplier, fields):
    return api.post("/supplier/site_builder", fields, token=supplier["token"])


def test_first_access_creates_defaults(api, supplier):
    site = body(api.get("/supplier/site_builder", token=supplier["token"]))["site_data"]
    assert site["is_published"] is False
    assert site["sections"] == []
    assert site["theme"]["layout_style"] == "modern"


def test_sections_are_saved_in_position_order(api, supplier, make_product):
    lamp = make_product("Desk Lamp")
    sections = [
        {"type": "products", "title": "Best sellers", "product_ids": [lamp["id"]], "position": 2},
        {"type": "banner", "imageUrl": "./hero.png", "title": "Welcome", "position": 0},
        {"type": "text", "title": "About", "content": "Since 1999", "position": 1},
    ]
    saved = body(_save(api, supplier, {"sections": sections, "hot_products": [lamp["id"]], "theme": {"primary_color": "#111111"}}))
    assert saved["is_published"] is False

    site = body(api.get("/supplier/site_builder", token=supplier["token"]))["site_data"]
    assert [s["type"] for s in site["sections"]] == ["banner", "text", "products"]
    assert site["sections"][0]["image_url"] == "/uploads/site-builder/hero.png"
    assert site["sections"][2]["products_data"][0]["title"] == "Desk Lamp"
    assert site["hot_products"][0]["id"] == lamp["id"]
    assert site["theme"]["primary_color"] == "#111111"
    assert site["theme"]["font_family"] == "Arial, sans-serif"


def test_invalid_site_configuration(api, supplier, make_product, other_supplier):
    assert _save(api, supplier, {"sections": [{"type": "carousel"}]}).json() == {"error": "Invalid section type: carousel"}
    assert _save(api, supplier, {"sections": [{"type": "collection"}]}).json() == {"error": "Collection section requires collection_id"}
    assert _save(api, supplier, {"sections": [{"type": "text", "position": -1}]}).json() == {
        "error": "Position must be a non-negative integer"
    }
    assert _save(api, supplier, {"theme": {"layout_style": "brutalist"}}).json() == {"error": "Invalid layout style: brutalist"}

    foreign = make_product("Their Lamp", owner=other_supplier)
    response = _save(api, supplier, {"hot_products": [{"product_id": foreign["id"]}]})
    assert response.status_code == 400
    assert response.json() == {"error": f"Products not found: {foreign['id']}"}


def test_publish_toggle(api, supplier):
    missing = api.post("/supplier/site_builder/publish", {"is_published": True}, token=supplier["token"])
    assert missing.status_code == 404
    assert missing.json() == {"error": "Site builder configuration not found"}

    api.get("/supplier/site_builder", token=supplier["token"])
    published = body(api.post("/supplier/site_builder/publish", {"is_published": True}, token=supplier["token"]))
    assert published == {"message": "Store published successfully", "is_published": True}


def test_public_store(api, supplier, make_product):
    lamp = make_product("Desk Lamp")
    draft = make_product("Prototype", status="draft")
    _save(api, supplier, {"hot_products": [lamp["id"], draft["id"]], "about_us": "Lamps and more"})

    hidden = api.get("/public/supplier/acme/store")
    assert hidden.status_code == 404
    assert hidden.json() == {"error": "Store not found or not published for this supplier"}

    api.post("/supplier/site_builder/publish", {"is_published": True}, token=supplier["token"])
    by_name = body(api.get("/public/supplier/acme/store"))["store"]
    assert by_name["store_info"]["supplier_name"] == "acme"
    assert by_name["about_us"] == "Lamps and more"
    assert [p["title"] for p in by_name["hot_products"]] == ["Desk Lamp"]

    by_id = body(api.get(f"/public/supplier/{supplier['id']}/store"))["store"]
    assert by_id["store_info"]["supplier_id"] == supplier["id"]

    stores = body(api.get("/public/stores"))["stores"]
    assert [s["supplier_name"] for s in stores] == ["acme"]


def test_unknown_or_client_store(api, shopper):
    assert api.get("/public/supplier/nobody/store").json() == {"error": "Supplier not found with the provided username"}
    assert api.get(f"/public/supplier/{shopper['id']}/store").status_code == 404


def test_site_image_upload(api, supplier):
    files = [("images", ("hero.png", PNG, "image/png"))]
    response = api.post("/supplier/site_builder/upload", token=supplier["token"], files=files)
    assert response.status_code == 201
    assert body(response)["files"][0].startswith("/uploads/site-builder/")
    empty = api.post("/supplier/site_builder/upload", token=supplier["token"])
    assert empty.json() == {"error": "No files uploaded"}


def test_site_payload_shapes_are_validated(api, supplier):
    response = _save(api, supplier, {"sections": "banner"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("sections: Input should be a valid list")
    assert _save(api, supplier, {"is_published": "sometimes"}).status_code == 400
