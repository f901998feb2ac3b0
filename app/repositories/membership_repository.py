from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select

from app.core.exceptions import (
    AlreadyMemberException,
    ConflictException,
    ForbiddenException,
    MembershipNotFoundException,
    WrongRoomPasswordException,
)
from app.core.log_config import logger
from app.database.gateway import DatabaseGateway, transactional
from app.models.room_user import RoomUser
from app.models.user import User
from app.repositories.room_repository import RoomRepository
from app.schemas.room import MemberView
from app.utils.clock import utcnow


def _member_query():
    return (
        select(
            RoomUser.room_user_id,
            RoomUser.room_id,
            RoomUser.user_id,
            RoomUser.is_admin,
            User.display_name,
            User.image_url,
        )
        .join(User, RoomUser.user_id == User.user_id)
        .where(RoomUser.is_deleted.is_(False))
        # Tenure order: earliest joiner first.
        .order_by(RoomUser.joined_at, RoomUser.room_user_id)
    )


def _to_view(row) -> MemberView:
    return MemberView(
        room_user_id=row.room_user_id,
        room_id=row.room_id,
        user_id=row.user_id,
        display_name=row.display_name,
        image_url=row.image_url,
        is_admin=row.is_admin,
    )


class MembershipRepository:
    def __init__(self, gateway: DatabaseGateway, rooms: RoomRepository):
        self.gateway = gateway
        self.rooms = rooms

    async def get(self, room_user_id: int) -> MemberView:
        row = await self.gateway.fetch_one(_member_query().where(RoomUser.room_user_id == room_user_id))
        if row is None:
            raise MembershipNotFoundException()
        return _to_view(row)

    async def get_membership(self, room_id: int, user_id: int) -> Optional[MemberView]:
        row = await self.gateway.fetch_one(
            _member_query().where(RoomUser.room_id == room_id, RoomUser.user_id == user_id)
        )
        return _to_view(row) if row else None

    async def list_by_room(self, room_id: int) -> List[MemberView]:
        await self.rooms.get_by_id(room_id)
        rows = await self.gateway.fetch_all(_member_query().where(RoomUser.room_id == room_id))
        return [_to_view(row) for row in rows]

    async def list_by_rooms(self, room_ids: Iterable[int]) -> Dict[int, List[MemberView]]:
        """Members of several rooms in one query, keyed by room_id."""
        room_ids = list(room_ids)
        members = defaultdict(list)
        if not room_ids:
            return members
        rows = await self.gateway.fetch_all(_member_query().where(RoomUser.room_id.in_(room_ids)))
        for row in rows:
            members[row.room_id].append(_to_view(row))
        return members

    @transactional
    async def join(self, room_id: int, user_id: int, password: Optional[str] = None) -> int:
        """
        Join a room, checking the password of gated rooms.

        Raises:
            RoomNotFoundException: If the room does not exist
            WrongRoomPasswordException: If the room is gated and the password does not match
            AlreadyMemberException: If the user already belongs to the room
        """
        room = await self.rooms.get_by_id(room_id)
        if room.has_password and not await self.rooms.verify_password(room_id, password):
            raise WrongRoomPasswordException()
        return await self.add_member(room_id, user_id, actor_id=user_id)

    async def add_member(self, room_id: int, user_id: int, actor_id: int, is_admin: bool = False) -> int:
        if await self.get_membership(room_id, user_id):
            raise AlreadyMemberException()
        return await self.gateway.insert(
            RoomUser,
            {"room_id": room_id, "user_id": user_id, "is_admin": is_admin, "joined_at": utcnow()},
            actor_id=actor_id,
        )

    @transactional
    async def leave(self, room_user_id: int, actor_id: int) -> None:
        """
        Remove a membership. Members may leave on their own; removing someone
        else (a kick) requires admin rights.
        """
        member = await self.get(room_user_id)
        if member.user_id != actor_id:
            await self.rooms.require_admin(member.room_id, actor_id)

        await self.gateway.soft_delete(RoomUser, RoomUser.room_user_id == room_user_id, actor_id=actor_id)
        await self._reelect(member.room_id, actor_id)

    @transactional
    async def promote(self, room_user_id: int, actor_id: int) -> None:
        member = await self.get(room_user_id)
        await self.rooms.require_admin(member.room_id, actor_id)
        if member.is_admin:
            return
        await self._set_admin(room_user_id, True, actor_id)

    @transactional
    async def demote(self, room_user_id: int, actor_id: int) -> None:
        member = await self.get(room_user_id)
        await self.rooms.require_admin(member.room_id, actor_id)
        if not member.is_admin:
            return

        others = [m for m in await self._live_members(member.room_id) if m.room_user_id != room_user_id]
        if not others:
            raise ConflictException(detail="The only member of a room must stay admin")

        await self._set_admin(room_user_id, False, actor_id)
        await self._reelect(member.room_id, actor_id, skip_room_user_id=room_user_id)

    async def _live_members(self, room_id: int) -> List[MemberView]:
        rows = await self.gateway.fetch_all(_member_query().where(RoomUser.room_id == room_id))
        return [_to_view(row) for row in rows]

    async def _set_admin(self, room_user_id: int, is_admin: bool, actor_id: int) -> None:
        await self.gateway.update(
            RoomUser,
            RoomUser.room_user_id == room_user_id,
            RoomUser.is_deleted.is_(False),
            values={"is_admin": is_admin},
            actor_id=actor_id,
        )

    async def _reelect(self, room_id: int, actor_id: int, skip_room_user_id: Optional[int] = None) -> None:
        """
        Keep at least one admin in the room and keep the creator an admin.

        With no admin left the longest-tenured member is promoted. If the
        creator is no longer an admin member the role passes to the
        longest-tenured admin. A room with no members left is deleted.
        """
        members = await self._live_members(room_id)
        if not members:
            await self.rooms.soft_delete(room_id, actor_id, system=True)
            return

        admins = [m for m in members if m.is_admin]
        if not admins:
            candidate = next(m for m in members if m.room_user_id != skip_room_user_id)
            await self._set_admin(candidate.room_user_id, True, actor_id)
            logger.info(f"Promoted user {candidate.user_id} to admin of room {room_id}")
            admins = [candidate]

        room = await self.rooms.get_by_id(room_id)
        if room.creator_id not in {admin.user_id for admin in admins}:
            await self.rooms.update_creator(room_id, admins[0].user_id, actor_id, system=True)
            logger.info(f"Room {room_id} creator passed to user {admins[0].user_id}")

    async def require_member(self, room_id: int, user_id: int) -> MemberView:
        member = await self.get_membership(room_id, user_id)
        if member is None:
            raise ForbiddenException(detail="You are not a member of this room")
        return member
