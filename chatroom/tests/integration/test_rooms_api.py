import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def create_room(client, owner, **payload):
    payload.setdefault("name", "Room")
    response = await client.post("/api/rooms", headers=owner["headers"], json=payload)
    assert response.status_code == 201, response.json()
    return response.json()


async def test_create_room_makes_creator_sole_admin(client: AsyncClient, alice, room):
    assert room["name"] == "Team"
    assert room["created_by"] == alice["id"]
    assert room["is_private"] is False
    assert len(room["invite_code"]) == 8

    response = await client.get(
        f"/api/rooms/{room['id']}/members", headers=alice["headers"]
    )
    assert response.status_code == 200
    members = response.json()
    assert len(members) == 1
    assert members[0]["user_id"] == alice["id"]
    assert members[0]["role"] == "admin"
    assert members[0]["user"]["display_name"] == "Alice"


async def test_create_room_blank_name(client: AsyncClient, alice):
    response = await client.post(
        "/api/rooms", headers=alice["headers"], json={"name": "   "}
    )
    assert response.status_code == 400
    assert response.json() == {
        "message": "Room name is required",
        "kind": "invalid_argument",
    }


async def test_invite_codes_are_unique(client: AsyncClient, alice):
    codes = {
        (await create_room(client, alice, name=f"Room {i}"))["invite_code"]
        for i in range(5)
    }
    assert len(codes) == 5


async def test_read_room_requires_membership(client: AsyncClient, bob, room):
    response = await client.get(f"/api/rooms/{room['id']}", headers=bob["headers"])
    assert response.status_code == 403
    assert response.json() == {
        "message": "Not a member of this room",
        "kind": "forbidden",
    }


async def test_missing_room_is_not_found_before_forbidden(client: AsyncClient, bob):
    response = await client.get("/api/rooms/9999", headers=bob["headers"])
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


async def test_join_public_room_by_id(client: AsyncClient, alice, bob, room):
    response = await client.post(
        f"/api/rooms/{room['id']}/join", headers=bob["headers"]
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Joined room successfully"

    again = await client.post(f"/api/rooms/{room['id']}/join", headers=bob["headers"])
    assert again.status_code == 409
    assert again.json() == {"message": "Already a member", "kind": "conflict"}

    members = await client.get(
        f"/api/rooms/{room['id']}/members", headers=alice["headers"]
    )
    assert [m["role"] for m in members.json()] == ["admin", "member"]


async def test_private_room_requires_invite_code(client: AsyncClient, alice, bob):
    private = await create_room(client, alice, name="Secret", is_private=True)

    by_id = await client.post(
        f"/api/rooms/{private['id']}/join", headers=bob["headers"]
    )
    assert by_id.status_code == 403

    by_code = await client.post(
        f"/api/rooms/join/{private['invite_code']}", headers=bob["headers"]
    )
    assert by_code.status_code == 200
    assert by_code.json()["room"]["id"] == private["id"]


async def test_join_unknown_room(client: AsyncClient, bob):
    response = await client.post("/api/rooms/9999/join", headers=bob["headers"])
    assert response.status_code == 404


async def test_join_by_invite_code_twice(client: AsyncClient, bob, room):
    first = await client.post(
        f"/api/rooms/join/{room['invite_code']}", headers=bob["headers"]
    )
    assert first.status_code == 200
    second = await client.post(
        f"/api/rooms/join/{room['invite_code']}", headers=bob["headers"]
    )
    assert second.status_code == 409


async def test_preview_room_by_invite_code(client: AsyncClient, bob, room):
    response = await client.get(
        f"/api/rooms/invite/{room['invite_code']}", headers=bob["headers"]
    )
    assert response.status_code == 200
    assert response.json()["id"] == room["id"]

    missing = await client.get("/api/rooms/invite/nope1234", headers=bob["headers"])
    assert missing.status_code == 404
    assert missing.json()["message"] == "Invalid invite code"


async def test_regenerating_invite_code_invalidates_old_one(
    client: AsyncClient, alice, bob, room
):
    old_code = room["invite_code"]
    response = await client.post(
        f"/api/rooms/{room['id']}/invite", headers=alice["headers"]
    )
    assert response.status_code == 200
    new_code = response.json()["invite_code"]
    assert new_code != old_code

    old = await client.get(f"/api/rooms/invite/{old_code}", headers=bob["headers"])
    assert old.status_code == 404
    new = await client.get(f"/api/rooms/invite/{new_code}", headers=bob["headers"])
    assert new.status_code == 200
    assert new.json()["id"] == room["id"]

    join_old = await client.post(f"/api/rooms/join/{old_code}", headers=bob["headers"])
    assert join_old.status_code == 404


async def test_regenerate_invite_code_requires_membership(
    client: AsyncClient, bob, room
):
    response = await client.post(
        f"/api/rooms/{room['id']}/invite", headers=bob["headers"]
    )
    assert response.status_code == 403


async def test_add_member_by_email(client: AsyncClient, alice, bob, room):
    response = await client.post(
        f"/api/rooms/{room['id']}/members",
        headers=alice["headers"],
        json={"email": bob["email"]},
    )
    assert response.status_code == 200
    member = response.json()
    assert member["user_id"] == bob["id"]
    assert member["role"] == "member"
    assert member["user"]["display_name"] == "Bob"

    again = await client.post(
        f"/api/rooms/{room['id']}/members",
        headers=alice["headers"],
        json={"email": bob["email"]},
    )
    assert again.status_code == 409
    assert again.json()["message"] == "User is already a member"


async def test_add_member_unknown_email(client: AsyncClient, alice, room):
    response = await client.post(
        f"/api/rooms/{room['id']}/members",
        headers=alice["headers"],
        json={"email": "ghost@example.com"},
    )
    assert response.status_code == 404


async def test_add_member_requires_membership(client: AsyncClient, bob, carol, room):
    response = await client.post(
        f"/api/rooms/{room['id']}/members",
        headers=bob["headers"],
        json={"email": carol["email"]},
    )
    assert response.status_code == 403


async def test_member_can_leave(client: AsyncClient, bob, room):
    await client.post(f"/api/rooms/{room['id']}/join", headers=bob["headers"])
    response = await client.delete(
        f"/api/rooms/{room['id']}/members/{bob['id']}", headers=bob["headers"]
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Left room successfully"}

    after = await client.get(f"/api/rooms/{room['id']}", headers=bob["headers"])
    assert after.status_code == 403


async def test_only_admin_removes_others(client: AsyncClient, alice, bob, room):
    await client.post(f"/api/rooms/{room['id']}/join", headers=bob["headers"])

    denied = await client.delete(
        f"/api/rooms/{room['id']}/members/{alice['id']}", headers=bob["headers"]
    )
    assert denied.status_code == 403

    removed = await client.delete(
        f"/api/rooms/{room['id']}/members/{bob['id']}", headers=alice["headers"]
    )
    assert removed.status_code == 200
    assert removed.json() == {"message": "Member removed successfully"}


async def test_remove_non_member(client: AsyncClient, alice, bob, room):
    response = await client.delete(
        f"/api/rooms/{room['id']}/members/{bob['id']}", headers=alice["headers"]
    )
    assert response.status_code == 404


async def test_list_rooms_with_last_message_and_unread(
    client: AsyncClient, alice, bob, room
):
    listing = await client.get("/api/rooms", headers=alice["headers"])
    assert listing.status_code == 200
    rooms = listing.json()
    assert len(rooms) == 1
    assert rooms[0]["id"] == room["id"]
    assert rooms[0]["last_message"] is None
    assert rooms[0]["unread_count"] == 0

    await client.post(f"/api/rooms/{room['id']}/join", headers=bob["headers"])
    for text in ("one", "two"):
        await client.post(
            f"/api/rooms/{room['id']}/messages",
            headers=bob["headers"],
            json={"content": text},
        )

    rooms = (await client.get("/api/rooms", headers=alice["headers"])).json()
    assert rooms[0]["last_message"]["content"] == "two"
    assert rooms[0]["unread_count"] == 2

    bob_rooms = (await client.get("/api/rooms", headers=bob["headers"])).json()
    assert bob_rooms[0]["unread_count"] == 0

    read = await client.post(f"/api/rooms/{room['id']}/read", headers=alice["headers"])
    assert read.status_code == 200
    rooms = (await client.get("/api/rooms", headers=alice["headers"])).json()
    assert rooms[0]["unread_count"] == 0


async def test_list_rooms_only_includes_memberships(
    client: AsyncClient, alice, bob, room
):
    rooms = (await client.get("/api/rooms", headers=bob["headers"])).json()
    assert rooms == []
