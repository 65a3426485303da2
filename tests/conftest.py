"""
Shared fixtures: a throwaway SQLite database, the FastAPI test client and
helpers that speak the encrypted ``{"data": ...}`` wire format.

Settings are read from the environment at import time, so the variables
below are set before anything from ``marketplace`` is imported.
"""

import os
import tempfile

_workdir = tempfile.mkdtemp(prefix="marketplace-tests-")
os.environ.setdefault("SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("AES_SECRET_KEY", "test-aes-passphrase")
os.environ["DB_DRIVER_NAME"] = "sqlite"
os.environ["DB_DATABASE_NAME"] = os.path.join(_workdir, "marketplace.db")
os.environ["UPLOAD_DIR"] = os.path.join(_workdir, "uploads")
os.environ["EMAIL_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from marketplace.api.encryption import decrypt_data, encrypt_data  # noqa: E402
from marketplace.api.presence import registry  # noqa: E402
from marketplace.database.core import admin_funcs, auth_funcs  # noqa: E402
from marketplace.database.schema import create_schema, drop_schema  # noqa: E402
from marketplace.main import app  # noqa: E402

PASSWORD = "secret123"


class ApiClient:
    """Thin wrapper over ``TestClient`` that encrypts bodies and adds the bearer token."""

    def __init__(self, client: TestClient):
        self.client = client

    def request(self, method: str, path: str, payload=None, token=None, **kwargs):
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if payload is not None:
            kwargs["json"] = {"data": encrypt_data(payload)}
        return self.client.request(method, path, headers=headers, **kwargs)

    def get(self, path, token=None, **kwargs):
        return self.request("GET", path, token=token, **kwargs)

    def post(self, path, payload=None, token=None, **kwargs):
        return self.request("POST", path, payload=payload, token=token, **kwargs)

    def login(self, email: str, password: str = PASSWORD) -> str:
        response = self.post("/account/login", {"email": email, "password": password})
        assert response.status_code == 200, response.text
        # tests authenticate with the bearer header only
        self.client.cookies.clear()
        return body(response)["token"]


def body(response):
    """Decrypt a successful response; error bodies are returned as plain JSON."""
    payload = response.json()
    if "data" in payload:
        return decrypt_data(payload["data"])
    return payload


@pytest.fixture(autouse=True)
def database():
    drop_schema()
    create_schema()
    admin_funcs.seed_system_roles()
    registry.connections.clear()
    registry.rooms.clear()
    yield
    drop_schema()


@pytest.fixture
def client(database):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api(client):
    return ApiClient(client)


@pytest.fixture
def make_user(api):
    """Register an account and log it in; returns ``{"id", "username", "email", "token"}``."""

    def _make(username: str, user_type: str = "client"):
        email = f"{username}@example.com"
        created = auth_funcs.signup_user(username=username, email=email, password=PASSWORD, user_type=user_type, agree_terms=True)
        return {"id": created["user"]["id"], "username": username, "email": email, "token": api.login(email)}

    return _make


@pytest.fixture
def supplier(make_user):
    return make_user("acme", "supplier")


@pytest.fixture
def other_supplier(make_user):
    return make_user("globex", "supplier")


@pytest.fixture
def shopper(make_user):
    return make_user("alice", "client")


@pytest.fixture
def super_admin(api):
    admin = admin_funcs.ensure_super_admin(username="root", email="root@example.com", password=PASSWORD)
    return {"id": admin["id"], "username": "root", "email": "root@example.com", "token": api.login("root@example.com")}


@pytest.fixture
def make_product(api, supplier):
    """Create a product for ``supplier`` through the multipart route."""

    def _make(title: str, owner=None, **fields):
        owner = owner or supplier
        data = {"title": title, "price": 10, "quantity": 20, "status": "active"}
        data.update(fields)
        response = api.post("/supplier/create_product", token=owner["token"], data={"data": encrypt_data(data)})
        assert response.status_code == 201, response.text
        return body(response)["product"]

    return _make
