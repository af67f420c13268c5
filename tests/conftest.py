from __future__ import annotations

import os
from typing import Callable

# klinik.main membuat app modul saat import; jangan sentuh ./klinik.db saat test
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient

from klinik.main import create_app


@pytest.fixture
def app(tmp_path):
    return create_app(database_url=f"sqlite:///{tmp_path / 'klinik-test.db'}", secret_key="test-secret", seed=False)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(app):
    return app.state.store


@pytest.fixture
def signup(client) -> Callable[..., dict]:
    def _signup(email: str, role: str, name: str | None = None, password: str = "rahasia123") -> dict:
        response = client.post(
            "/signup",
            json={"email": email, "password": password, "name": name or email.split("@")[0], "role": role},
        )
        assert response.status_code == 200, response.text
        user = response.json()["user"]
        login = client.post("/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        user["headers"] = {"Authorization": f"Bearer {login.json()['access_token']}"}
        return user

    return _signup


@pytest.fixture
def dokter(signup) -> dict:
    return signup("dokter@klinik.test", "dokter", name="dr. Sari")


@pytest.fixture
def admin(signup) -> dict:
    return signup("admin@klinik.test", "admin", name="Admin Apotek")


@pytest.fixture
def pasien_a(signup) -> dict:
    return signup("budi@klinik.test", "pasien", name="Budi")


@pytest.fixture
def pasien_b(signup) -> dict:
    return signup("ani@klinik.test", "pasien", name="Ani")
