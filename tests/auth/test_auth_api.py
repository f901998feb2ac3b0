import re

import pytest


@pytest.mark.asyncio
async def test_register_mints_device_id(client):
    response = await client.post("/users", json={"name": "Ada", "device_id": ""})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] == 1
    assert data["error"] is None
    assert re.fullmatch(r"[A-Za-z0-9]{20}", data["user"]["device_id"])
    assert data["user"]["display_name"] == "Ada"
    assert data["user"]["user_image_url"] == ""
    assert data["access_token"]
    assert data["refresh_token"]

@pytest.mark.asyncio
async def test_register_again_with_device_id_renames_same_user(client, register):
    ada = await register("Ada")
    response = await client.post("/users", json={"name": "Ada2", "device_id": ada["device_id"]})
    data = response.json()
    assert data["success"] == 1
    assert data["user"]["user_id"] == ada["user_id"]
    assert data["user"]["display_name"] == "Ada2"
    assert data["user"]["device_id"] == ada["device_id"]
    # The device is known, so an anonymous call does not get its tokens.
    assert data["access_token"] is None
    assert data["refresh_token"] is None
    rooms = await client.get("/rooms", headers=ada["headers"])
    assert rooms.json()["success"] == 1

@pytest.mark.asyncio
async def test_register_rejects_malformed_device_id(client):
    response = await client.post("/users", json={"name": "Ada", "device_id": "short"})
    data = response.json()
    assert data["success"] == 0
    assert data["error"]["code"] == "invalid_request"

@pytest.mark.asyncio
async def test_register_cannot_rename_another_users_device(client, register):
    ada = await register("Ada")
    bob = await register("Bob")
    response = await client.post(
        "/users", json={"name": "Mallory", "device_id": bob["device_id"]}, headers=ada["headers"]
    )
    assert response.json()["error"]["code"] == "forbidden"

@pytest.mark.asyncio
async def test_anonymous_register_cannot_take_over_credentialed_device(client, register):
    ada = await register("Ada")
    await client.put(
        "/users/me/credentials", json={"username": "ada", "password": "correct-horse"}, headers=ada["headers"]
    )
    bob = await register("Bob")
    listed = (await client.get("/users", headers=bob["headers"])).json()["users"]
    leaked = next(user["device_id"] for user in listed if user["user_id"] == ada["user_id"])

    response = await client.post("/users", json={"name": "pwned", "device_id": leaked})
    data = response.json()
    assert data["success"] == 0
    assert data["error"]["code"] == "unauthorized"

    rooms = await client.get("/rooms", headers=ada["headers"])
    assert rooms.status_code == 200
    assert rooms.json()["success"] == 1
    login = await client.post(
        "/login", json={"username": "ada", "password": "correct-horse", "device_id": leaked}
    )
    assert login.json()["info"]["display_name"] == "Ada"

@pytest.mark.asyncio
async def test_signed_in_owner_reregistering_gets_new_tokens(client, register):
    ada = await register("Ada")
    response = await client.post(
        "/users", json={"name": "Ada2", "device_id": ada["device_id"]}, headers=ada["headers"]
    )
    data = response.json()
    assert data["user"]["user_id"] == ada["user_id"]
    assert data["access_token"]
    assert data["refresh_token"]

    old = await client.get("/rooms", headers=ada["headers"])
    assert old.status_code == 401
    new = await client.get("/rooms", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert new.json()["success"] == 1

@pytest.mark.asyncio
async def test_login_with_wrong_password(client, register):
    ada = await register("Ada")
    await client.post("/users", json={"name": "Ada2", "device_id": ada["device_id"]})
    response = await client.post(
        "/login",
        json={"username": "Ada2", "password": "x", "device_id": ada["device_id"], "device_name": "iPhone"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] == 0
    assert data["error"]["code"] == "unauthorized"

@pytest.mark.asyncio
async def test_login_user_success(client, register):
    ada = await register("Ada")
    response = await client.put(
        "/users/me/credentials",
        json={"username": "ada", "password": "password123"},
        headers=ada["headers"],
    )
    assert response.json()["success"] == 1

    response = await client.post(
        "/login",
        json={"username": "ada", "password": "password123", "device_id": ada["device_id"], "device_name": "iPhone"},
    )
    data = response.json()
    assert data["success"] == 1
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["info"] == {"display_name": "Ada", "username": "ada", "image_url": None}

@pytest.mark.asyncio
async def test_login_invalidates_previous_token_for_device(client, register):
    ada = await register("Ada")
    await client.put(
        "/users/me/credentials",
        json={"username": "ada", "password": "password123"},
        headers=ada["headers"],
    )
    login = await client.post(
        "/login",
        json={"username": "ada", "password": "password123", "device_id": ada["device_id"], "device_name": "iPhone"},
    )
    new_headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    stale = await client.get("/rooms", headers=ada["headers"])
    assert stale.status_code == 401
    assert stale.json()["error"]["code"] == "unauthorized"

    fresh = await client.get("/rooms", headers=new_headers)
    assert fresh.status_code == 200
    assert fresh.json()["success"] == 1

@pytest.mark.asyncio
async def test_duplicate_username_is_conflict(client, register):
    ada = await register("Ada")
    bob = await register("Bob")
    await client.put("/users/me/credentials", json={"username": "taken", "password": "password123"}, headers=ada["headers"])
    response = await client.put(
        "/users/me/credentials", json={"username": "taken", "password": "password123"}, headers=bob["headers"]
    )
    assert response.json()["error"]["code"] == "conflict"

@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client, register):
    ada = await register("Ada")
    response = await client.post(
        "/refresh", json={"refresh_token": ada["refresh_token"], "device_id": ada["device_id"]}
    )
    data = response.json()
    assert data["success"] == 1
    assert data["refresh_token"] != ada["refresh_token"]

    reused = await client.post(
        "/refresh", json={"refresh_token": ada["refresh_token"], "device_id": ada["device_id"]}
    )
    assert reused.status_code == 401
    assert reused.json()["error"]["code"] == "unauthorized"

    rooms = await client.get("/rooms", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert rooms.json()["success"] == 1

@pytest.mark.asyncio
async def test_logout_revokes_token(client, register):
    ada = await register("Ada")
    response = await client.post("/logout", headers=ada["headers"])
    assert response.json() == {"success": 1, "error": None}

    response = await client.get("/rooms", headers=ada["headers"])
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_protected_route_invalid_token(client):
    response = await client.get("/rooms", headers={"Authorization": "Bearer invalid_token"})
    assert response.status_code == 401
    data = response.json()
    assert data["success"] == 0
    assert data["error"]["code"] == "unauthorized"

@pytest.mark.asyncio
async def test_protected_route_no_token(client):
    response = await client.get("/rooms")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthorized"

@pytest.mark.asyncio
async def test_list_users_excludes_room_members(client, register):
    ada = await register("Ada")
    bob = await register("Bob")
    carol = await register("Carol")
    room_id = (await client.post("/rooms", json={"room_name": "General"}, headers=ada["headers"])).json()["room_id"]
    await client.post(f"/rooms/{room_id}/join", json={}, headers=bob["headers"])

    response = await client.get("/users", params={"room_id": room_id}, headers=ada["headers"])
    data = response.json()
    assert [user["user_id"] for user in data["users"]] == [carol["user_id"]]
