import uuid

import pytest
from fastapi.testclient import TestClient

from .conftest import client, make_settings, setup_space, create_location
from stockroom import models
from stockroom.errors import CorruptHierarchyError
from stockroom.main import create_app
from stockroom.services.locations import PathResolver, resolve_path


def _chain(client, space_id, member_id, depth):
    ids = []
    parent = None
    for level in range(depth):
        loc = create_location(client, space_id, member_id, f"L{level}", parent_id=parent)
        parent = loc["id"]
        ids.append(uuid.UUID(loc["id"]))
    return ids


def test_path_of_deep_chain(client, db_session):
    member, space = setup_space(client)
    ids = _chain(client, space["id"], member["id"], 10)
    assert resolve_path(db_session, ids[-1]) == " / ".join(f"L{i}" for i in range(10))
    assert resolve_path(db_session, ids[0]) == "L0"


def test_path_is_deterministic(client, db_session):
    member, space = setup_space(client)
    ids = _chain(client, space["id"], member["id"], 4)
    resolver = PathResolver(db_session)
    first = resolver.resolve(ids[-1])
    assert resolver.resolve(ids[-1]) == first
    assert resolve_path(db_session, ids[-1]) == first


def test_missing_location_resolves_to_empty_path(db_session):
    assert resolve_path(db_session, uuid.uuid4()) == ""


def test_primed_resolver_does_not_query(client, db_session):
    member, space = setup_space(client)
    ids = _chain(client, space["id"], member["id"], 5)
    resolver = PathResolver(db_session).prime(uuid.UUID(space["id"]))

    def fail(*args, **kwargs):
        raise AssertionError("resolver hit the database")

    resolver.db = type("NoDb", (), {"query": fail})()
    assert resolver.resolve(ids[-1]).endswith("L3 / L4")


def test_walk_stops_at_max_depth(client, db_session):
    member, space = setup_space(client)
    ids = _chain(client, space["id"], member["id"], 4)
    with pytest.raises(CorruptHierarchyError):
        PathResolver(db_session, max_depth=3).resolve(ids[-1])
    assert PathResolver(db_session, max_depth=4).resolve(ids[-1]) == "L0 / L1 / L2 / L3"


def test_cycle_written_behind_the_api_is_reported(client, db_session):
    member, space = setup_space(client)
    a, b = _chain(client, space["id"], member["id"], 2)
    db_session.get(models.Location, a).parent_location_id = b
    db_session.commit()

    with pytest.raises(CorruptHierarchyError):
        resolve_path(db_session, b)

    resp = client.get(f"/spaces/{space['id']}/locations/{b}")
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "CORRUPT_HIERARCHY"


def test_nesting_deeper_than_configured_limit_is_refused(tmp_path):
    settings = make_settings(tmp_path, MAX_LOCATION_DEPTH=3)
    with TestClient(create_app(settings)) as c:
        member, space = setup_space(c)
        ids = _chain(c, space["id"], member["id"], 3)
        resp = c.post(
            f"/spaces/{space['id']}/locations",
            json={"name": "Too deep", "created_by_id": member["id"], "parent_location_id": str(ids[-1])},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "LOCATION_TOO_DEEP"


def test_reparenting_counts_the_moved_subtree(tmp_path):
    settings = make_settings(tmp_path, MAX_LOCATION_DEPTH=3)
    with TestClient(create_app(settings)) as c:
        member, space = setup_space(c)
        a, b = _chain(c, space["id"], member["id"], 2)
        top = create_location(c, space["id"], member["id"], "C")
        leaf = create_location(c, space["id"], member["id"], "D", parent_id=top["id"])

        resp = c.patch(
            f"/spaces/{space['id']}/locations/{top['id']}",
            json={"parent_location_id": str(b)},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "LOCATION_TOO_DEEP"

        assert c.get(f"/spaces/{space['id']}/locations/{leaf['id']}").json()["data"]["path"] == "C / D"
        assert c.get(f"/spaces/{space['id']}/locations").status_code == 200

        # the same subtree fits one level higher
        resp = c.patch(
            f"/spaces/{space['id']}/locations/{top['id']}",
            json={"parent_location_id": str(a)},
        )
        assert resp.status_code == 200
        assert c.get(f"/spaces/{space['id']}/locations/{leaf['id']}").json()["data"]["path"] == "L0 / C / D"
