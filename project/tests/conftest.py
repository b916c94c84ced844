"""Shared fixtures: a fresh SQLite database per test and logged-in users per role."""

import os
import tempfile

# settings are read once at import time, so the environment goes first
_workdir = tempfile.mkdtemp(prefix="orderflow-tests-")
DB_PATH = os.path.join(_workdir, "orderflow.db")
os.environ.update({
    "AUTH_SECRET_KEY": "test-secret-key-with-at-least-32-bytes!",
    "AUTH_LOGIN": "admin",
    "AUTH_PASSWORD": "admin-pass",
    "DATABASE_URL": f"sqlite+aiosqlite:///{DB_PATH}",
    "UPLOAD_DIR": os.path.join(_workdir, "uploads"),
    "UPLOAD_MAX_BYTES": str(64 * 1024),
    "LOG_DIR": os.path.join(_workdir, "log"),
    "LOG_PRINT": "0",
    "LOCAL_CARRIERS": '["Local-A", "Picap"]',
    "NATIONAL_CARRIERS": '["Interrapidisimo"]',
})

import pytest
from fastapi.testclient import TestClient

from orderflow.main import app
from orderflow.utils import security

# keep hashing fast in tests; verification reads the rounds from the hash
security.pwd_context.update(sha256_crypt__default_rounds=1000)

ROLE_USERS = {
    "billing": "bill",
    "wallet": "wally",
    "logistics": "logan",
    "courier": "Local-A",
}


@pytest.fixture()
def client():
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)
    with TestClient(app) as test_client:
        yield test_client


def login(client, username, password):
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


def create_user(client, admin_headers, username, role, password="secret", name=None):
    response = client.post(
        "/users/",
        json={"username": username, "name": name or username, "role": role, "password": password},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture()
def admin(client):
    return login(client, "admin", "admin-pass")


@pytest.fixture()
def headers(client, admin):
    """Authorization headers for admin and one user per role."""
    result = {"admin": admin}
    for role, username in ROLE_USERS.items():
        create_user(client, admin, username, role)
        result[role] = login(client, username, "secret")
    return result


def create_order(client, headers, invoice_code="INV-100", **fields):
    body = {
        "invoice_code": invoice_code,
        "client_name": "Ana",
        "delivery_method": "local-delivery",
        "payment_method": "cash",
        "total_amount": "50000",
    }
    body.update(fields)
    response = client.post("/orders/", json=body, headers=headers["billing"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


def deliver_cash_order(client, headers, invoice_code, amount):
    """Takes a new cash order for local delivery all the way to delivered."""
    order = create_order(client, headers, invoice_code, total_amount=str(amount))
    oid = order["id"]

    response = client.post(
        f"/orders/{oid}/verify-payment",
        json={"payment_status": "pending"},
        headers=headers["wallet"],
    )
    assert response.status_code == 200, response.text

    response = client.post(
        f"/orders/{oid}/process",
        json={"weight": 500, "recipient": ROLE_USERS["courier"]},
        headers=headers["logistics"],
    )
    assert response.status_code == 200, response.text

    response = client.post(
        f"/orders/{oid}/deliver",
        json={"delivery_proof": "photo.jpg", "amount_collected": str(amount)},
        headers=headers["courier"],
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]
