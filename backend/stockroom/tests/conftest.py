import os
os.environ["TESTING"] = "1"
import pytest
from fastapi.testclient import TestClient

import sys
from pathlib import Path

import uuid

sys.path.append(str(Path(__file__).resolve().parents[2]))

from stockroom.main import create_app
from stockroom.settings import Settings


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "AUTO_CREATE_SCHEMA": True,
        "TESTING": True,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def db_session(client):
    db = client.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def create_member(client, *, name: str = "Alex", email: str | None = None, password: str = "secret123"):
    email = email or f"member-{uuid.uuid4().hex[:8]}@example.com"
    resp = client.post(
        "/spaces/members", json={"name": name, "email": email, "password": password}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def create_space(client, owner_id: str, *, name: str = "Home"):
    resp = client.post("/spaces", json={"name": name, "owner_id": owner_id})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def setup_space(client, *, name: str = "Home"):
    """A fresh member plus a space they own."""
    member = create_member(client)
    space = create_space(client, member["id"], name=name)
    return member, space


def create_location(client, space_id: str, member_id: str, name: str, *, parent_id: str | None = None, **extra):
    body = {"name": name, "created_by_id": member_id, **extra}
    if parent_id is not None:
        body["parent_location_id"] = parent_id
    resp = client.post(f"/spaces/{space_id}/locations", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def create_item(client, space_id: str, member_id: str, location_id: str, name: str, **extra):
    body = {"name": name, "location_id": location_id, "created_by_id": member_id, **extra}
    resp = client.post(f"/spaces/{space_id}/items", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def move_item(client, space_id: str, item_id: str, to_location_id: str, member_id: str, notes: str | None = None):
    body = {"to_location_id": to_location_id, "moved_by_id": member_id}
    if notes is not None:
        body["notes"] = notes
    return client.post(f"/spaces/{space_id}/items/{item_id}/move", json=body)
