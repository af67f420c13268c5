from __future__ import annotations

from fastapi.testclient import TestClient

from klinik.main import create_app


def test_startup_seeds_demo_users_once(tmp_path):
    url = f"sqlite:///{tmp_path / 'seed.db'}"
    for _ in range(2):
        app = create_app(database_url=url, secret_key="test-secret", seed=True)
        with TestClient(app) as client:
            login = client.post("/login", json={"email": "admin@klinik.local", "password": "admin123"})
            assert login.status_code == 200
            assert login.json()["user"]["role"] == "admin"

    users = app.state.store.get_by_prefix("user:")
    assert sorted(u["role"] for u in users) == ["admin", "dokter", "pasien"]
