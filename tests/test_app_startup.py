from __future__ import annotations

from dataclasses import replace
from datetime import date

from fastapi.testclient import TestClient

from app import create_app
from roundbook.utils.config import get_settings


def _settings(tmp_path, seed: bool = True):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / "startup.db",
        admin_user_ids=("admin-user",),
        seed_demo_data=seed,
        demo_year=2026,
    )


def test_startup_initializes_and_seeds(tmp_path):
    app = create_app(_settings(tmp_path))
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "healthy"}
        timeline = client.get(
            "/years/2026/rounds",
            params={"today": "2026-01-08"},
            headers={"X-User-Id": "admin-user"},
        )
        assert timeline.status_code == 200
        assert timeline.json()["today"] == "2026-01-08"
        assert timeline.json()["active_sub_round_booker_id"] == "b2"


def test_today_override_is_ignored_for_non_admins(tmp_path):
    app = create_app(_settings(tmp_path))
    with TestClient(app) as client:
        response = client.get(
            "/years/2026/rounds",
            params={"today": "2026-01-08"},
            headers={"X-User-Id": "user-alder"},
        )
        assert response.status_code == 200
        assert response.json()["today"] == date.today().isoformat()


def test_startup_is_idempotent(tmp_path):
    settings = _settings(tmp_path)
    with TestClient(create_app(settings)):
        pass
    app = create_app(settings)
    with TestClient(app) as client:
        assert client.get("/years/2026/reservations", headers={"X-User-Id": "admin-user"}).json() == []
    assert len(app.state.repository.list_bookers()) == 4


def test_unseeded_database_has_no_config(tmp_path):
    app = create_app(_settings(tmp_path, seed=False))
    with TestClient(app) as client:
        assert client.get("/years/2026/rounds").status_code == 404
