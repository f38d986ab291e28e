"""
tests/conftest.py -- Shared fixtures for the AuthKit API tests.

Every test gets its own app over a fresh in-memory SQLite database
(`sqlite://` + StaticPool, see DBStorage.reload), with RBAC seeded and
rate limiting disabled.
"""

from __future__ import annotations

import os

os.environ.setdefault("APP_ENV", "test")

import pytest

from api import create_app
from models import storage
from models.seed import seed_admin
from models.user import User
from utils.security import hash_password

ADMIN_EMAIL = "admin@template.com"
ADMIN_PASSWORD = "Admin@123"
USER_PASSWORD = "Test@1234"


@pytest.fixture
def app():
    app = create_app("test")
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, email: str, password: str = USER_PASSWORD, name: str | None = "Test User"):
    payload = {"email": email, "password": password}
    if name is not None:
        payload["name"] = name
    return client.post("/auth/register", json=payload)


def login(client, email: str, password: str = USER_PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def update_user(app, email: str, **fields) -> None:
    """Change a user row directly, outside of any request."""
    with app.app_context():
        session = storage.get_session()
        user = session.query(User).filter(User.email == email).one()
        for key, value in fields.items():
            setattr(user, key, value)
        session.commit()


@pytest.fixture
def admin_tokens(app, client) -> dict:
    with app.app_context():
        seed_admin(storage.get_session(), ADMIN_EMAIL, hash_password(ADMIN_PASSWORD))
    resp = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert resp.status_code == 200
    return resp.get_json()


@pytest.fixture
def user_tokens(client) -> dict:
    resp = register(client, "testuser@test.com")
    assert resp.status_code == 201
    return resp.get_json()


@pytest.fixture
def user_id(client, user_tokens) -> str:
    return client.get("/users/me", headers=auth_header(user_tokens["accessToken"])).get_json()["id"]
