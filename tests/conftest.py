from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import auth
import clients
from config import settings

OWNER = "admin"
OWNER_PASSWORD = "secret123"

# Smallest valid PNG header; the store only checks type and size
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture(autouse=True)
def gym_env(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "db_path", tmp_path / "gym.db")
    monkeypatch.setattr(settings, "photo_dir", tmp_path / "uploads")
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "owner_username", OWNER)
    monkeypatch.setattr(settings, "owner_password", OWNER_PASSWORD)
    auth.init_auth(settings.owner_credentials())
    return tmp_path


def stored_photos() -> list[str]:
    if not settings.photo_dir.exists():
        return []
    return sorted(p.name for p in settings.photo_dir.iterdir())


def make_client(**fields):
    data = {"name": "Test Client", "phone": "9000000000"}
    data.update(fields)
    photo = data.pop("photo", None)
    result = clients.create_client(data, photo, authorized=True)
    assert result.ok, result.message
    return result.value


@pytest.fixture()
def api_client():
    from api import create_app

    with TestClient(create_app()) as client:
        yield client


@pytest.fixture()
def owner_client(api_client):
    response = api_client.post("/login", json={"username": OWNER, "password": OWNER_PASSWORD})
    assert response.status_code == 200, response.text
    return api_client
