import uuid

from .conftest import client, create_member, setup_space, create_location, create_item, move_item
from stockroom import models
from stockroom.errors import InternalError
from stockroom.services import movements


def test_garage_drill_example(client):
    member, space = setup_space(client)
    garage = create_location(client, space["id"], member["id"], "Garage", location_type="ROOM")
    shelf = create_location(client, space["id"], member["id"], "Shelf A", parent_id=garage["id"])
    bin3 = create_location(client, space["id"], member["id"], "Bin 3", parent_id=shelf["id"])
    drill = create_item(client, space["id"], member["id"], bin3["id"], "Drill")
    assert drill["location"]["path"] == "Garage / Shelf A / Bin 3"

    resp = move_item(client, space["id"], drill["id"], garage["id"], member["id"], notes="Back on the wall")
    assert resp.status_code == 200
    moved = resp.json()["data"]
    assert moved["location"]["path"] == "Garage"
    assert moved["last_moved_by_id"] == member["id"]

    history = client.get(f"/spaces/{space['id']}/items/{drill['id']}/history").json()
    assert history["pagination"]["total"] == 1
    row = history["data"][0]
    assert row["from_location"] == {"id": bin3["id"], "name": "Bin 3", "deleted": False}
    assert row["to_location"] == {"id": garage["id"], "name": "Garage", "deleted": False}
    assert row["moved_by"]["id"] == member["id"]
    assert row["item"]["name"] == "Drill"
    assert row["notes"] == "Back on the wall"


def test_n_moves_give_chained_history_newest_first(client):
    member, space = setup_space(client)
    locs = [create_location(client, space["id"], member["id"], f"Spot {i}") for i in range(4)]
    item = create_item(client, space["id"], member["id"], locs[0]["id"], "Kettle")
    route = [1, 2, 3, 0, 2]
    for idx in route:
        assert move_item(client, space["id"], item["id"], locs[idx]["id"], member["id"]).status_code == 200

    body = client.get(f"/spaces/{space['id']}/items/{item['id']}/history").json()
    rows = body["data"]
    assert len(rows) == len(route)
    assert body["pagination"]["total"] == len(route)
    assert rows[0]["to_location"]["id"] == locs[route[-1]]["id"]
    assert rows[-1]["from_location"]["id"] == locs[0]["id"]
    for newer, older in zip(rows, rows[1:]):
        assert newer["from_location"]["id"] == older["to_location"]["id"]
        assert newer["id"] > older["id"]

    page = client.get(
        f"/spaces/{space['id']}/items/{item['id']}/history", params={"limit": 2, "offset": 1}
    ).json()
    assert [r["id"] for r in page["data"]] == [r["id"] for r in rows[1:3]]


def test_move_is_atomic_when_ledger_write_fails(client, monkeypatch):
    member, space = setup_space(client)
    a = create_location(client, space["id"], member["id"], "A")
    b = create_location(client, space["id"], member["id"], "B")
    item = create_item(client, space["id"], member["id"], a["id"], "Vase")

    def broken(*args, **kwargs):
        raise InternalError("ledger unavailable")

    monkeypatch.setattr(movements, "record_movement", broken)
    resp = move_item(client, space["id"], item["id"], b["id"], member["id"])
    assert resp.status_code == 500
    assert resp.json()["error"] == {"code": "INTERNAL_ERROR", "message": "Internal server error"}
    monkeypatch.undo()

    current = client.get(f"/spaces/{space['id']}/items/{item['id']}").json()["data"]
    assert current["location_id"] == a["id"]
    assert current["last_moved_by_id"] is None
    history = client.get(f"/spaces/{space['id']}/items/{item['id']}/history").json()
    assert history["data"] == []


def test_move_validations(client):
    member, space = setup_space(client)
    a = create_location(client, space["id"], member["id"], "A")
    item = create_item(client, space["id"], member["id"], a["id"], "Rug")
    other_member, other_space = setup_space(client, name="Other")
    foreign = create_location(client, other_space["id"], other_member["id"], "Foreign")
    outsider = create_member(client)

    resp = move_item(client, space["id"], item["id"], foreign["id"], member["id"])
    assert resp.status_code == 400
    assert resp.json()["error"]["field"] == "to_location_id"

    resp = move_item(client, space["id"], item["id"], a["id"], outsider["id"])
    assert resp.status_code == 400
    assert resp.json()["error"]["field"] == "moved_by_id"

    resp = move_item(client, other_space["id"], item["id"], foreign["id"], other_member["id"])
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ITEM_NOT_FOUND"

    history = client.get(f"/spaces/{space['id']}/items/{item['id']}/history").json()
    assert history["pagination"]["total"] == 0


def test_ledger_survives_deletes(client, db_session):
    member, space = setup_space(client)
    a = create_location(client, space["id"], member["id"], "Old shed")
    b = create_location(client, space["id"], member["id"], "New shed")
    item = create_item(client, space["id"], member["id"], a["id"], "Mower")
    move_item(client, space["id"], item["id"], b["id"], member["id"])

    assert client.delete(f"/spaces/{space['id']}/items/{item['id']}").status_code == 204
    assert client.delete(f"/spaces/{space['id']}/locations/{a['id']}").status_code == 204

    rows = client.get(f"/spaces/{space['id']}/history").json()["data"]
    assert len(rows) == 1
    row = rows[0]
    assert row["item"] == {"id": None, "name": "Mower", "deleted": True}
    assert row["from_location"] == {"id": None, "name": "Old shed", "deleted": True}
    assert row["to_location"] == {"id": b["id"], "name": "New shed", "deleted": False}
    assert db_session.query(models.MovementHistory).count() == 1

    resp = client.get(f"/spaces/{space['id']}/items/{item['id']}/history")
    assert resp.status_code == 404


def test_space_history_filters(client):
    alice, space = setup_space(client)
    bob = create_member(client, name="Bob")
    client.post(f"/spaces/{space['id']}/members", json={"member_id": bob["id"]})
    a = create_location(client, space["id"], alice["id"], "A")
    b = create_location(client, space["id"], alice["id"], "B")
    c = create_location(client, space["id"], alice["id"], "C")
    cup = create_item(client, space["id"], alice["id"], a["id"], "Cup")
    plate = create_item(client, space["id"], alice["id"], a["id"], "Plate")

    move_item(client, space["id"], cup["id"], b["id"], alice["id"])
    move_item(client, space["id"], plate["id"], c["id"], bob["id"])
    move_item(client, space["id"], cup["id"], c["id"], bob["id"])

    url = f"/spaces/{space['id']}/history"
    everything = client.get(url).json()
    assert everything["pagination"]["total"] == 3
    assert [r["item"]["name"] for r in everything["data"]] == ["Cup", "Plate", "Cup"]

    by_bob = client.get(url, params={"member_id": bob["id"]}).json()["data"]
    assert len(by_bob) == 2
    assert all(r["moved_by"]["name"] == "Bob" for r in by_bob)

    touching_b = client.get(url, params={"location_id": b["id"]}).json()["data"]
    assert len(touching_b) == 2
    assert {r["item"]["name"] for r in touching_b} == {"Cup"}

    _, other_space = setup_space(client, name="Other")
    assert client.get(f"/spaces/{other_space['id']}/history").json()["data"] == []


def test_history_of_unknown_item(client):
    _, space = setup_space(client)
    resp = client.get(f"/spaces/{space['id']}/items/{uuid.uuid4()}/history")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ITEM_NOT_FOUND"


def test_shelf_bin_drill_example(client):
    member, space = setup_space(client)
    shelf = create_location(client, space["id"], member["id"], "Shelf A")
    bin3 = create_location(client, space["id"], member["id"], "Bin 3", parent_id=shelf["id"])
    drill = create_item(client, space["id"], member["id"], bin3["id"], "Drill")
    assert bin3["path"] == "Shelf A / Bin 3"
    assert drill["location"]["path"] == "Shelf A / Bin 3"

    resp = move_item(client, space["id"], drill["id"], shelf["id"], member["id"])
    assert resp.json()["data"]["location"]["path"] == "Shelf A"

    rows = client.get(f"/spaces/{space['id']}/items/{drill['id']}/history").json()["data"]
    assert len(rows) == 1
    assert rows[0]["from_location"]["name"] == "Bin 3"
    assert rows[0]["to_location"]["name"] == "Shelf A"
