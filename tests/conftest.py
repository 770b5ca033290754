"""
Shared fixtures.

Everything runs against the in-memory store with a cheap hash work factor.
"""

import pytest
from fastapi.testclient import TestClient

from hearth.api.app import create_app
from hearth.config import Settings
from hearth.services.container import build_container


HEAD_PASSWORD = "Passw0rd!"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="test",
        jwt_secret_key="test-secret",
        password_hash_iterations=1_000,
        hash_workers=2,
        store_timeout_seconds=1.0,
    )


@pytest.fixture
def container(settings):
    c = build_container(settings)
    yield c
    c.close()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    yield TestClient(app)
    app.state.container.close()


# =============================================================================
# Helpers
# =============================================================================


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, family_name: str, name: str, email: str, password: str = HEAD_PASSWORD) -> dict:
    response = client.post(
        "/auth/register",
        json={"family_name": family_name, "name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


def login(client, email: str, password: str = HEAD_PASSWORD) -> str:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def role_id(client, token: str, name: str) -> str:
    roles = client.get("/roles", headers=bearer(token)).json()
    return next(r["id"] for r in roles if r["name"] == name)
