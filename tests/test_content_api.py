import os

import pytest

from marketplace.api.encryption import encrypt_data
from marketplace.database.config.config import settings
from tests.conftest import body

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def shirt(api, supplier):
    files = [("media", ("front.png", PNG, "image/png")), ("media", ("back.png", PNG, "image/png"))]
    response = api.post("/supplier/create_product", token=supplier["token"], data={"data": encrypt_data({"title": "Linen Shirt"})}, files=files)
    assert response.status_code == 201
    return body(response)["product"]


def _on_disk(path):
    return os.path.join(settings.UPLOAD_DIR, *path[len("/uploads/"):].split("/"))


def test_get_files_lists_images_per_parent(api, supplier, shirt, make_product):
    make_product("No Pictures")
    files = [("collection_images", ("cover.jpg", PNG, "image/jpeg"))]
    api.post("/supplier/create_collection", token=supplier["token"], data={"data": encrypt_data({"title": "Summer"})}, files=files)

    content = body(api.get("/supplier/get_files", token=supplier["token"]))
    assert content["message"] == "Content loaded successfully"
    groups = {group["parent_type"]: group for group in content["images"]}
    assert set(groups) == {"product", "collection"}

    product_group = groups["product"]
    assert product_group["parent_id"] == shirt["id"]
    assert product_group["title"] == "Linen Shirt"
    first = product_group["images"][0]
    assert first["file_name"] == os.path.basename(shirt["media"][0])
    assert first["full_name"] == f"user_{supplier['id']}/{first['file_name']}"
    assert first["extension"] == ".png"
    assert first["reference"].endswith(shirt["media"][0])
    assert groups["collection"]["title"] == "Summer"


def test_delete_file(api, supplier, shirt):
    front, back = shirt["media"]
    assert os.path.exists(_on_disk(front))
    entry = {"parent_id": shirt["id"], "parent_type": "product", "file_name": os.path.basename(front)}

    response = api.post("/supplier/delete_file", {"data": [entry]}, token=supplier["token"])
    assert response.status_code == 200
    result = body(response)
    assert result["message"] == "1 file(s) deleted, 0 failed"
    assert result["results"]["success"] == [{"file_name": os.path.basename(front)}]
    assert not os.path.exists(_on_disk(front))
    assert os.path.exists(_on_disk(back))

    product = body(api.post("/supplier/get_product", {"id": shirt["id"]}, token=supplier["token"]))["product"]
    assert product["media"] == [back]

    again = body(api.post("/supplier/delete_file", {"data": [entry]}, token=supplier["token"]))
    assert again["results"]["failed"] == [{"file_name": os.path.basename(front), "reason": "File not found in product files"}]


def test_delete_file_reports_each_failure(api, supplier, other_supplier, shirt):
    name = os.path.basename(shirt["media"][0])
    entries = [
        {"parent_type": "product", "file_name": name},
        {"parent_id": "nope", "parent_type": "product", "file_name": name},
        {"parent_id": shirt["id"], "parent_type": "banner", "file_name": name},
    ]
    result = body(api.post("/supplier/delete_file", {"data": entries}, token=supplier["token"]))
    assert result["message"] == "0 file(s) deleted, 3 failed"
    assert [f["reason"] for f in result["results"]["failed"]] == ["Missing required information", "Invalid parent id", "Invalid parent type"]

    foreign = {"parent_id": shirt["id"], "parent_type": "product", "file_name": name}
    result = body(api.post("/supplier/delete_file", {"data": [foreign]}, token=other_supplier["token"]))
    assert result["results"]["failed"] == [{"file_name": name, "reason": "Product not found"}]
    assert os.path.exists(_on_disk(shirt["media"][0]))

    assert api.post("/supplier/delete_file", {"data": []}, token=supplier["token"]).status_code == 400
