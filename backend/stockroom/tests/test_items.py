from .conftest import client, create_member, setup_space, create_location, create_item


def _space_with_location(client, name="Shelf"):
    member, space = setup_space(client)
    loc = create_location(client, space["id"], member["id"], name)
    return member, space, loc


def test_create_item_defaults_and_location_path(client):
    member, space = setup_space(client)
    garage = create_location(client, space["id"], member["id"], "Garage")
    shelf = create_location(client, space["id"], member["id"], "Shelf A", parent_id=garage["id"])
    item = create_item(client, space["id"], member["id"], shelf["id"], "Hammer")
    assert item["quantity"] == 1
    assert item["location"] == {
        "id": shelf["id"],
        "name": "Shelf A",
        "parent_location_id": garage["id"],
        "path": "Garage / Shelf A",
    }
    assert item["tags"] == []
    assert item["created_by_id"] == member["id"]


def test_item_location_must_be_in_space(client):
    member, space, _ = _space_with_location(client)
    other_member, other_space, foreign = _space_with_location(client, "Foreign")
    resp = client.post(
        f"/spaces/{space['id']}/items",
        json={"name": "Saw", "location_id": foreign["id"], "created_by_id": member["id"]},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == {
        "code": "INVALID_REFERENCE",
        "message": "Location not found in this space",
        "field": "location_id",
    }


def test_negative_quantity_and_bad_url_are_rejected(client):
    member, space, loc = _space_with_location(client)
    base = {"name": "Nails", "location_id": loc["id"], "created_by_id": member["id"]}
    resp = client.post(f"/spaces/{space['id']}/items", json={**base, "quantity": -1})
    assert resp.status_code == 400
    resp = client.post(f"/spaces/{space['id']}/items", json={**base, "image_url": "not a url"})
    assert resp.status_code == 400


def test_list_items_filters_and_pagination(client):
    member, space = setup_space(client)
    bench = create_location(client, space["id"], member["id"], "Bench")
    drawer = create_location(client, space["id"], member["id"], "Drawer")
    create_item(client, space["id"], member["id"], bench["id"], "Cordless Drill")
    create_item(client, space["id"], member["id"], bench["id"], "Drill bits")
    create_item(client, space["id"], member["id"], drawer["id"], "Screwdriver")

    url = f"/spaces/{space['id']}/items"
    body = client.get(url, params={"search": "drill"}).json()
    assert sorted(i["name"] for i in body["data"]) == ["Cordless Drill", "Drill bits"]
    assert body["pagination"]["total"] == 2

    body = client.get(url, params={"location_id": drawer["id"]}).json()
    assert [i["name"] for i in body["data"]] == ["Screwdriver"]

    body = client.get(url, params={"limit": 2, "offset": 0}).json()
    assert [i["name"] for i in body["data"]] == ["Screwdriver", "Drill bits"]
    assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0}

    body = client.get(url, params={"limit": 2, "offset": 2}).json()
    assert [i["name"] for i in body["data"]] == ["Cordless Drill"]


def test_search_treats_wildcards_literally(client):
    member, space, loc = _space_with_location(client)
    create_item(client, space["id"], member["id"], loc["id"], "100% cotton")
    create_item(client, space["id"], member["id"], loc["id"], "1000 screws")
    body = client.get(f"/spaces/{space['id']}/items", params={"search": "0%"}).json()
    assert [i["name"] for i in body["data"]] == ["100% cotton"]


def test_page_size_limit(client):
    _, space, _ = _space_with_location(client)
    resp = client.get(f"/spaces/{space['id']}/items", params={"limit": 101})
    assert resp.status_code == 400
    assert resp.json()["error"]["field"] == "limit"
    resp = client.get(f"/spaces/{space['id']}/items", params={"offset": -1})
    assert resp.status_code == 400


def test_update_item_partial(client):
    member, space, loc = _space_with_location(client)
    item = create_item(client, space["id"], member["id"], loc["id"], "Glue", description="Wood glue")
    resp = client.patch(
        f"/spaces/{space['id']}/items/{item['id']}",
        json={"quantity": 3, "updated_by_id": member["id"]},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["quantity"] == 3
    assert data["description"] == "Wood glue"
    assert data["updated_by_id"] == member["id"]
    assert data["location_id"] == loc["id"]


def test_update_by_outsider_is_rejected(client):
    member, space, loc = _space_with_location(client)
    outsider = create_member(client)
    item = create_item(client, space["id"], member["id"], loc["id"], "Tape")
    resp = client.patch(
        f"/spaces/{space['id']}/items/{item['id']}",
        json={"name": "Duct tape", "updated_by_id": outsider["id"]},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["field"] == "updated_by_id"


def test_cross_space_item_access_is_not_found(client):
    member, space, loc = _space_with_location(client)
    _, other_space, _ = _space_with_location(client, "Other")
    item = create_item(client, space["id"], member["id"], loc["id"], "Ladder")
    base = f"/spaces/{other_space['id']}/items/{item['id']}"
    for resp in (client.get(base), client.patch(base, json={"name": "Mine"}), client.delete(base)):
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "ITEM_NOT_FOUND"
    assert client.get(f"/spaces/{space['id']}/items/{item['id']}").json()["data"]["name"] == "Ladder"


def test_scan_item_by_legacy_barcode(client):
    member, space, loc = _space_with_location(client)
    item = create_item(client, space["id"], member["id"], loc["id"], "Sander", barcode="4006381333931")
    assert item["reference"] == {"kind": "BARCODE", "value": "4006381333931"}

    resp = client.get(f"/spaces/{space['id']}/items/scan/4006381333931")
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == item["id"]
    assert resp.json()["data"]["location"]["path"] == "Shelf"


def test_duplicate_item_reference_conflicts(client):
    member, space, loc = _space_with_location(client)
    create_item(client, space["id"], member["id"], loc["id"], "A", qr_code="QR-1")
    resp = client.post(
        f"/spaces/{space['id']}/items",
        json={"name": "B", "location_id": loc["id"], "created_by_id": member["id"], "qr_code": "QR-1"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DUPLICATE_ENTRY"


def test_delete_item(client):
    member, space, loc = _space_with_location(client)
    item = create_item(client, space["id"], member["id"], loc["id"], "Broom")
    assert client.delete(f"/spaces/{space['id']}/items/{item['id']}").status_code == 204
    assert client.get(f"/spaces/{space['id']}/items/{item['id']}").status_code == 404
