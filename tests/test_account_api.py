import pytest

from marketplace.api.encryption import encrypt_data
from marketplace.database.core import mailer
from tests.conftest import PASSWORD, body


@pytest.fixture
def outbox(monkeypatch):
    """Capture verification and reset tokens instead of emailing them."""
    sent = {}
    monkeypatch.setattr(mailer, "send_verification_email", lambda email, token: sent.__setitem__("verify", token))
    monkeypatch.setattr(mailer, "send_password_reset_email", lambda email, token: sent.__setitem__("reset", token))
    return sent


def _signup(api, username="bob", email="bob@example.com", **extra):
    payload = {"username": username, "email": email, "password": PASSWORD, "agree_terms": True}
    payload.update(extra)
    return api.post("/account/signup", payload)


def test_signup_returns_encrypted_user(api, outbox):
    response = _signup(api, user_type="supplier")
    assert response.status_code == 201
    assert set(response.json()) == {"data"}
    data = body(response)
    assert data["message"] == "Registration successful!"
    assert data["user"]["email"] == "bob@example.com"
    assert data["user"]["access_roles"] == ["supplier"]
    assert data["user"]["is_email_verified"] is False
    assert "verify" in outbox


def test_signup_rejects_duplicates(api, outbox):
    assert _signup(api).status_code == 201
    response = _signup(api, username="bobby")
    assert response.status_code == 409
    assert response.json() == {"error": "User already exists"}


def test_signup_validation_errors(api):
    response = _signup(api, email="not-an-email")
    assert response.status_code == 400
    assert "email" in response.json()["error"]
    assert _signup(api, user_type="admin").json() == {"error": "Invalid user type"}


def test_short_password_is_rejected(api):
    response = api.post("/account/signup", {"username": "bob", "email": "bob@example.com", "password": "123"})
    assert response.status_code == 400
    assert response.json() == {"error": "Password must be at least 6 characters"}


def test_plain_json_bodies_are_accepted(api, outbox):
    response = api.client.post("/account/signup", json={"username": "bob", "email": "bob@example.com", "password": PASSWORD})
    assert response.status_code == 201


def test_undecryptable_body_is_rejected(api):
    response = api.client.post("/account/login", json={"data": "definitely-not-ciphertext"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid encrypted data"}


def test_login_issues_token_and_cookie(api, outbox):
    _signup(api)
    response = api.post("/account/login", {"email": "BOB@example.com", "password": PASSWORD})
    assert response.status_code == 200
    data = body(response)
    assert data["message"] == "Login successful"
    assert data["user_type"] == "client"
    assert data["user_data"]["first_login"] is True
    assert response.cookies.get("token") == data["token"]

    again = body(api.post("/account/login", {"email": "bob@example.com", "password": PASSWORD}))
    assert again["user_data"]["first_login"] is False


def test_cookie_authenticates_requests(api, outbox):
    _signup(api)
    api.post("/account/login", {"email": "bob@example.com", "password": PASSWORD})
    response = api.get("/account/me")
    assert response.status_code == 200
    assert body(response)["user"]["username"] == "bob"


def test_wrong_password_and_lockout(api, outbox):
    _signup(api)
    for _ in range(5):
        response = api.post("/account/login", {"email": "bob@example.com", "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}
    locked = api.post("/account/login", {"email": "bob@example.com", "password": PASSWORD})
    assert locked.status_code == 401
    assert "temporarily locked" in locked.json()["error"]


def test_protected_routes_need_a_valid_token(api):
    assert api.get("/account/me").json() == {"error": "Not authorized, no token"}
    response = api.get("/account/me", token="not-a-jwt")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authorized, token failed"}


def test_email_verification(api, outbox):
    _signup(api)
    response = api.get(f"/account/verify_email/{outbox['verify']}")
    assert response.status_code == 200
    assert body(response)["message"] == "Email verified successfully"
    assert api.get(f"/account/verify_email/{outbox['verify']}").json() == {"error": "Invalid or expired verification link"}
    assert body(api.post("/account/resend_email", {"email": "bob@example.com"}))["message"] == "Email is already verified"


def test_password_reset_flow(api, outbox):
    _signup(api)
    assert api.post("/account/forgot_password", {"email": "nobody@example.com"}).status_code == 404
    assert body(api.post("/account/forgot_password", {"email": "bob@example.com"}))["message"] == "Password reset email sent"

    response = api.post(f"/account/reset_password/{outbox['reset']}", {"password": "brand-new"})
    assert body(response)["message"] == "Password reset successful"
    assert api.post("/account/login", {"email": "bob@example.com", "password": PASSWORD}).status_code == 401
    assert api.login("bob@example.com", "brand-new")


def test_update_password(api, shopper):
    wrong = api.post("/account/update_password", {"current_password": "nope-nope", "new_password": "another1"}, token=shopper["token"])
    assert wrong.json() == {"error": "Current password is incorrect"}
    ok = api.post("/account/update_password", {"current_password": PASSWORD, "new_password": "another1"}, token=shopper["token"])
    assert body(ok)["message"] == "Password updated successfully"
    assert api.login(shopper["email"], "another1")


def test_become_supplier_and_switch_role(api, shopper):
    denied = api.post("/account/switch_role", {"role": "supplier"}, token=shopper["token"])
    assert denied.status_code == 403

    became = body(api.post("/account/become_a_supplier", token=shopper["token"]))
    assert became["user"]["access_roles"] == ["client", "supplier"]
    assert api.post("/account/become_a_supplier", token=shopper["token"]).json() == {"error": "User already has supplier access"}

    switched = body(api.post("/account/switch_role", {"role": "supplier"}, token=shopper["token"]))
    assert switched["user"]["user_type"] == "supplier"
    assert api.get("/supplier/get_all_products", token=shopper["token"]).status_code == 200


def test_role_guards(api, shopper, supplier):
    response = api.get("/supplier/get_all_products", token=shopper["token"])
    assert response.status_code == 403
    assert response.json() == {"error": "Access denied. Supplier access only."}
    assert api.get("/client/orders", token=supplier["token"]).json() == {"error": "Access denied. Client access only."}


def test_logout_clears_cookie(api, outbox):
    _signup(api)
    api.post("/account/login", {"email": "bob@example.com", "password": PASSWORD})
    response = api.post("/account/logout")
    assert body(response)["message"] == "Logged out successfully"
    assert api.get("/account/me").status_code == 401


def test_encrypted_request_helper_matches_wire_format(api, outbox):
    _signup(api)
    raw = {"data": encrypt_data({"email": "bob@example.com", "password": PASSWORD})}
    assert api.client.post("/account/login", json=raw).status_code == 200
