import pytest
from sqlalchemy import select

from app.core.exceptions import (
    AlreadyMemberException,
    ConflictException,
    ForbiddenException,
    MembershipNotFoundException,
    RoomNotFoundException,
    WrongRoomPasswordException,
)
from app.models.room_user import RoomUser


@pytest.fixture
async def bob(users):
    return await users.upsert_by_device_id("Bob", "")

@pytest.fixture
async def carol(users):
    return await users.upsert_by_device_id("Carol", "")


async def _admins(memberships, room_id):
    return [m.user_id for m in await memberships.list_by_room(room_id) if m.is_admin]


@pytest.mark.asyncio
async def test_join_open_room(rooms, memberships, test_user, bob):
    room_id = await rooms.create("General", test_user.user_id)
    room_user_id = await memberships.join(room_id, bob.user_id)

    member = await memberships.get(room_user_id)
    assert member.user_id == bob.user_id
    assert member.is_admin is False
    assert member.display_name == "Bob"

    with pytest.raises(AlreadyMemberException):
        await memberships.join(room_id, bob.user_id)

@pytest.mark.asyncio
async def test_join_password_gated_room(rooms, memberships, gateway, test_user, bob):
    room_id = await rooms.create("Secret", test_user.user_id, password="hunter2")

    for attempt in (None, "", "wrong"):
        with pytest.raises(WrongRoomPasswordException):
            await memberships.join(room_id, bob.user_id, attempt)
    rows = await gateway.fetch_all(select(RoomUser.room_user_id).where(RoomUser.user_id == bob.user_id))
    assert rows == []

    assert await memberships.join(room_id, bob.user_id, "hunter2")

@pytest.mark.asyncio
async def test_join_deleted_room(rooms, memberships, test_user, bob):
    room_id = await rooms.create("General", test_user.user_id)
    await rooms.soft_delete(room_id, test_user.user_id)
    with pytest.raises(RoomNotFoundException):
        await memberships.join(room_id, bob.user_id)

@pytest.mark.asyncio
async def test_rejoin_after_leave(rooms, memberships, test_user, bob):
    room_id = await rooms.create("General", test_user.user_id)
    first = await memberships.join(room_id, bob.user_id)
    await memberships.leave(first, bob.user_id)
    second = await memberships.join(room_id, bob.user_id)
    assert second != first
    with pytest.raises(MembershipNotFoundException):
        await memberships.get(first)

@pytest.mark.asyncio
async def test_creator_leaving_reelects_longest_tenured_member(rooms, memberships, test_user, bob, carol):
    room_id = await rooms.create("General", test_user.user_id)
    await memberships.join(room_id, bob.user_id)
    await memberships.join(room_id, carol.user_id)
    creator_membership = await memberships.get_membership(room_id, test_user.user_id)

    await memberships.leave(creator_membership.room_user_id, test_user.user_id)

    room = await rooms.get_by_id(room_id)
    assert room.creator_id == bob.user_id
    assert await _admins(memberships, room_id) == [bob.user_id]

@pytest.mark.asyncio
async def test_creator_leaving_hands_role_to_existing_admin(rooms, memberships, test_user, bob, carol):
    room_id = await rooms.create("General", test_user.user_id)
    await memberships.join(room_id, bob.user_id)
    carol_membership = await memberships.join(room_id, carol.user_id)
    await memberships.promote(carol_membership, test_user.user_id)

    creator_membership = await memberships.get_membership(room_id, test_user.user_id)
    await memberships.leave(creator_membership.room_user_id, test_user.user_id)

    assert (await rooms.get_by_id(room_id)).creator_id == carol.user_id
    assert await _admins(memberships, room_id) == [carol.user_id]

@pytest.mark.asyncio
async def test_last_member_leaving_deletes_room(rooms, memberships, test_user):
    room_id = await rooms.create("Solo", test_user.user_id)
    membership = await memberships.get_membership(room_id, test_user.user_id)
    await memberships.leave(membership.room_user_id, test_user.user_id)

    with pytest.raises(RoomNotFoundException):
        await rooms.get_by_id(room_id)

@pytest.mark.asyncio
async def test_kick_requires_admin(rooms, memberships, test_user, bob, carol):
    room_id = await rooms.create("General", test_user.user_id)
    bob_membership = await memberships.join(room_id, bob.user_id)
    carol_membership = await memberships.join(room_id, carol.user_id)

    with pytest.raises(ForbiddenException):
        await memberships.leave(carol_membership, bob.user_id)

    await memberships.leave(bob_membership, test_user.user_id)
    assert [m.user_id for m in await memberships.list_by_room(room_id)] == [test_user.user_id, carol.user_id]

@pytest.mark.asyncio
async def test_promote_and_demote_require_admin(rooms, memberships, test_user, bob, carol):
    room_id = await rooms.create("General", test_user.user_id)
    bob_membership = await memberships.join(room_id, bob.user_id)
    carol_membership = await memberships.join(room_id, carol.user_id)

    with pytest.raises(ForbiddenException):
        await memberships.promote(carol_membership, bob.user_id)

    await memberships.promote(bob_membership, test_user.user_id)
    assert await _admins(memberships, room_id) == [test_user.user_id, bob.user_id]

    await memberships.demote(bob_membership, test_user.user_id)
    assert await _admins(memberships, room_id) == [test_user.user_id]

@pytest.mark.asyncio
async def test_demoting_last_admin_promotes_someone_else(rooms, memberships, test_user, bob):
    room_id = await rooms.create("General", test_user.user_id)
    await memberships.join(room_id, bob.user_id)
    creator_membership = await memberships.get_membership(room_id, test_user.user_id)

    await memberships.demote(creator_membership.room_user_id, test_user.user_id)

    assert await _admins(memberships, room_id) == [bob.user_id]
    assert (await rooms.get_by_id(room_id)).creator_id == bob.user_id

@pytest.mark.asyncio
async def test_demoting_only_member_is_conflict(rooms, memberships, test_user):
    room_id = await rooms.create("Solo", test_user.user_id)
    membership = await memberships.get_membership(room_id, test_user.user_id)
    with pytest.raises(ConflictException):
        await memberships.demote(membership.room_user_id, test_user.user_id)
    assert await _admins(memberships, room_id) == [test_user.user_id]

@pytest.mark.asyncio
async def test_room_keeps_an_admin_through_membership_churn(rooms, memberships, users, test_user):
    room_id = await rooms.create("Busy", test_user.user_id)
    others = [await users.upsert_by_device_id(f"User {i}", "") for i in range(4)]
    room_user_ids = [await memberships.join(room_id, user.user_id) for user in others]

    creator_membership = await memberships.get_membership(room_id, test_user.user_id)
    for room_user_id in [creator_membership.room_user_id] + room_user_ids[:3]:
        member = await memberships.get(room_user_id)
        await memberships.leave(room_user_id, member.user_id)
        remaining = await memberships.list_by_room(room_id)
        assert any(m.is_admin for m in remaining)
