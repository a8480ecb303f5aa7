from conftest import auth_headers


def add_item(client, admin, **overrides):
    body = {"name": "Poha", "description": "Flattened rice with peanuts", "price": 70, "image": "poha.jpg"}
    body.update(overrides)
    return client.post("/menu", json=body, headers=auth_headers(admin))


def test_menu_is_public(client, admin):
    add_item(client, admin)
    add_item(client, admin, name="Upma", available=False)

    resp = client.get("/menu")
    assert resp.status_code == 200
    assert [i["name"] for i in resp.get_json()] == ["Poha", "Upma"]

    only_available = client.get("/menu?available=true").get_json()
    assert [i["name"] for i in only_available] == ["Poha"]


def test_get_single_item(client, admin):
    item_id = add_item(client, admin).get_json()["item"]["id"]
    resp = client.get(f"/menu/{item_id}")
    assert resp.status_code == 200
    assert resp.get_json()["price"] == 70
    assert client.get("/menu/9999").status_code == 404


def test_create_requires_admin(client, user):
    assert client.post("/menu", json={"name": "x"}).status_code == 401
    assert add_item(client, user).status_code == 403


def test_create_requires_fields(client, admin):
    resp = add_item(client, admin, description="")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "All fields are required"
    assert add_item(client, admin, price=-5).status_code == 400


def test_partial_update_keeps_other_fields(client, admin):
    item_id = add_item(client, admin).get_json()["item"]["id"]
    resp = client.put(f"/menu/{item_id}", json={"price": 85, "available": False}, headers=auth_headers(admin))
    assert resp.status_code == 200
    item = resp.get_json()["item"]
    assert item["price"] == 85
    assert item["available"] is False
    assert item["name"] == "Poha"
    assert item["image"] == "poha.jpg"

    assert client.put("/menu/9999", json={"price": 1}, headers=auth_headers(admin)).status_code == 404


def test_delete_item(client, admin):
    item_id = add_item(client, admin).get_json()["item"]["id"]
    assert client.delete(f"/menu/{item_id}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/menu/{item_id}").status_code == 404
    assert client.delete(f"/menu/{item_id}", headers=auth_headers(admin)).status_code == 404
