import pytest

from tests.conftest import PASSWORD, body


@pytest.fixture
def make_admin(api, super_admin):
    def _make(username="ops", **fields):
        payload = {"username": username, "email": f"{username}@example.com", "password": PASSWORD}
        payload.update(fields)
        response = api.post("/admin/create_admin", payload, token=super_admin["token"])
        assert response.status_code == 201, response.text
        admin = body(response)["admin"]
        admin["token"] = api.login(admin["email"]) if fields.get("is_active", True) else None
        return admin

    return _make


def test_create_admin_gets_role_defaults(make_admin):
    admin = make_admin()
    assert admin["is_admin"] is True
    assert admin["is_super_admin"] is False
    assert admin["admin_role"] == "admin"
    assert "view_users" in admin["admin_permissions"]
    assert admin["is_email_verified"] is True


def test_create_admin_validation(api, super_admin, make_admin):
    make_admin()
    duplicate = api.post("/admin/create_admin", {"username": "ops", "email": "other@example.com", "password": PASSWORD}, token=super_admin["token"])
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "Username already exists"}
    unknown_role = api.post(
        "/admin/create_admin", {"username": "ops2", "email": "ops2@example.com", "password": PASSWORD, "role": "wizard"}, token=super_admin["token"]
    )
    assert unknown_role.json() == {"error": "Role not found: wizard"}
    bad_permission = api.post(
        "/admin/create_admin",
        {"username": "ops3", "email": "ops3@example.com", "password": PASSWORD, "permissions": ["fly"]},
        token=super_admin["token"],
    )
    assert bad_permission.json() == {"error": "Invalid permissions: fly"}


def test_only_super_admin_manages_admins(api, make_admin, supplier):
    admin = make_admin()
    response = api.post("/admin/create_admin", {"username": "x12", "email": "x12@example.com", "password": PASSWORD}, token=admin["token"])
    assert response.status_code == 403
    assert response.json() == {"error": "Access denied. Super admin privileges required."}
    assert api.get("/admin/dashboard", token=supplier["token"]).json() == {"error": "Access denied. Admin privileges required."}


def test_permission_guards(api, make_admin):
    admin = make_admin()
    assert api.get("/admin/get_users", token=admin["token"]).status_code == 200
    roles = api.get("/admin/get_roles", token=admin["token"])
    assert roles.status_code == 403
    assert roles.json() == {"error": "Access denied. Required permission: manage_admin_roles"}

    limited = make_admin("viewer", permissions=["view_orders"])
    assert api.get("/admin/get_users", token=limited["token"]).status_code == 403


def test_deactivated_admin(api, super_admin, make_admin):
    admin = make_admin()
    toggled = body(api.post("/admin/toggle_admin_status", {"admin_id": admin["id"], "is_active": False}, token=super_admin["token"]))
    assert toggled == {"message": "Admin deactivated successfully", "admin_id": admin["id"], "is_active": False}

    assert api.get("/admin/dashboard", token=admin["token"]).json() == {"error": "Account is deactivated. Contact super admin."}
    assert api.get("/admin/get_users", token=admin["token"]).json() == {"error": "Account is deactivated. Contact super admin."}
    login = api.post("/account/login", {"email": admin["email"], "password": PASSWORD})
    assert login.status_code == 403


def test_super_admin_is_protected(api, super_admin):
    response = api.post("/admin/toggle_admin_status", {"admin_id": super_admin["id"], "is_active": False}, token=super_admin["token"])
    assert response.json() == {"error": "Cannot modify super admin status"}
    assert api.post("/admin/delete_admin", {"admin_id": super_admin["id"]}, token=super_admin["token"]).json() == {
        "error": "Cannot delete super admin"
    }


def test_update_list_and_delete_admin(api, super_admin, make_admin):
    admin = make_admin()
    updated = body(api.post("/admin/update_admin", {"admin_id": admin["id"], "permissions": ["view_orders"]}, token=super_admin["token"]))
    assert updated["admin"]["admin_permissions"] == ["view_orders"]

    listed = body(api.get("/admin/get_admins", token=super_admin["token"]))
    assert sorted(a["username"] for a in listed["admins"]) == ["ops", "root"]

    deleted = body(api.post("/admin/delete_admin", {"admin_id": admin["id"]}, token=super_admin["token"]))
    assert deleted["deleted_admin_id"] == admin["id"]
    assert api.post("/admin/get_admin", {"admin_id": admin["id"]}, token=super_admin["token"]).status_code == 404


def test_role_lifecycle(api, super_admin, make_admin):
    created = api.post(
        "/admin/create_role",
        {"name": "Support", "display_name": "Support Desk", "default_permissions": ["view_users", "view_messages"]},
        token=super_admin["token"],
    )
    assert created.status_code == 201
    role = body(created)["role"]
    assert role["name"] == "support"
    assert role["permissions_count"] == 2

    agent = make_admin("agent", role="support")
    assert agent["admin_permissions"] == ["view_users", "view_messages"]

    detail = body(api.post("/admin/get_role", {"role_id": role["id"]}, token=super_admin["token"]))["role"]
    assert detail["users_count"] == 1
    blocked = api.post("/admin/delete_role", {"role_id": role["id"]}, token=super_admin["token"])
    assert blocked.json() == {"error": "Cannot delete role. 1 admin(s) are assigned to this role."}

    renamed = body(api.post("/admin/update_role", {"role_id": role["id"], "name": "helpdesk"}, token=super_admin["token"]))["role"]
    assert renamed["name"] == "helpdesk"
    assert body(api.post("/admin/get_admin", {"admin_id": agent["id"]}, token=super_admin["token"]))["admin"]["admin_role"] == "helpdesk"

    api.post("/admin/update_admin", {"admin_id": agent["id"], "role": "admin"}, token=super_admin["token"])
    deleted = body(api.post("/admin/delete_role", {"role_id": role["id"]}, token=super_admin["token"]))
    assert deleted["deleted_role_id"] == role["id"]


def test_system_role_is_read_only(api, super_admin):
    roles = body(api.get("/admin/get_roles", token=super_admin["token"]))["roles"]
    system = next(r for r in roles if r["name"] == "admin")
    assert system["is_system_role"] is True
    assert api.post("/admin/update_role", {"role_id": system["id"], "display_name": "X"}, token=super_admin["token"]).json() == {
        "error": "Cannot modify system role"
    }
    assert api.post("/admin/delete_role", {"role_id": system["id"]}, token=super_admin["token"]).json() == {
        "error": "Cannot delete system role"
    }


def test_permission_catalog(api, super_admin):
    catalog = body(api.get("/admin/get_permissions", token=super_admin["token"]))
    assert catalog["total_categories"] == 12
    assert catalog["total_permissions"] == 51
    assert catalog["permissions"][0]["permissions"][0] == {"key": "view_users", "label": "View Users"}

    assigned = body(api.post("/admin/get_role_permissions", {"role_name": "admin"}, token=super_admin["token"]))
    assert assigned["assigned_count"] == 5
    flags = {p["key"]: p["assigned"] for c in assigned["permissions"] for p in c["permissions"]}
    assert flags["view_users"] is True
    assert flags["delete_users"] is False


def test_user_listing(api, super_admin, supplier, shopper):
    users = body(api.get("/admin/get_users?user_type=supplier", token=super_admin["token"]))
    assert [u["username"] for u in users["users"]] == ["acme"]
    assert users["pagination"]["total"] == 1
    found = body(api.get("/admin/get_users?search=ali", token=super_admin["token"]))
    assert [u["username"] for u in found["users"]] == ["alice"]
    assert api.get("/admin/get_users?user_type=robot", token=super_admin["token"]).json() == {"error": "Invalid user type: robot"}


def test_platform_views(api, super_admin, supplier, shopper, make_product):
    lamp = make_product("Desk Lamp", price=10, quantity=5)
    make_product("Prototype", status="draft")
    checkout = {
        "email": shopper["email"], "first_name": "Alice", "last_name": "M", "address": "1 Main St", "city": "Oslo",
        "phone": "555", "items": [{"product_id": lamp["id"], "quantity": 2}], "subtotal": 20, "total": 20,
    }
    order = body(api.post("/client/place_order", checkout, token=shopper["token"]))["orders"][0]

    dashboard = body(api.get("/admin/dashboard", token=super_admin["token"]))
    assert dashboard["stats"]["total_suppliers"]["value"] == 1
    assert dashboard["stats"]["total_revenue"]["value"] == 20
    assert dashboard["stats"]["pending_orders"]["value"] == 1
    assert len(dashboard["sales_chart_data"]) == 30
    assert dashboard["sales_chart_data"][-1]["orders"] == 1
    assert any(a["type"] == "client_order" for a in dashboard["activities"])

    orders = body(api.get("/admin/get_orders", token=super_admin["token"]))
    assert orders["orders"][0]["supplier_name"] == "acme"
    assert orders["stats"]["orders"]["value"] == 1
    details = body(api.post("/admin/get_order_details", {"order_no": order["order_no"]}, token=super_admin["token"]))
    assert details["order"]["supplier"]["username"] == "acme"

    products = body(api.get("/admin/get_products", token=super_admin["token"]))
    assert products["stats"]["total_products"] == 2
    assert products["stats"]["draft_products"] == 1
    product = body(api.post("/admin/get_product_details", {"product_id": lamp["id"]}, token=super_admin["token"]))
    assert product["product"]["supplier"]["username"] == "acme"
