from typing import List, Optional

from sqlalchemy import select

from app.core.exceptions import (
    ForbiddenException,
    InvalidRequestException,
    RoomNotFoundException,
    UserNotFoundException,
)
from app.core.log_config import logger
from app.core.security import hash_password, verify_password
from app.database.gateway import DatabaseGateway, transactional
from app.models.invite import Invite
from app.models.room import Room
from app.models.room_user import RoomUser
from app.models.user import User
from app.schemas.invite import InviteState
from app.schemas.room import RoomState, RoomView, transition_room
from app.utils.clock import utcnow


def _room_query():
    return (
        select(
            Room.room_id,
            Room.room_name,
            Room.creator_id,
            Room.password_hash,
            Room.image_url,
            User.display_name.label("creator_name"),
        )
        .join(User, Room.creator_id == User.user_id)
        .where(Room.is_deleted.is_(False))
    )


def _to_view(row) -> RoomView:
    return RoomView(
        room_id=row.room_id,
        room_name=row.room_name,
        creator_id=row.creator_id,
        creator_name=row.creator_name,
        has_password=row.password_hash is not None,
        image_url=row.image_url,
    )


class RoomRepository:
    def __init__(self, gateway: DatabaseGateway):
        self.gateway = gateway

    @transactional
    async def create(self, room_name: str, creator_id: int, password: Optional[str] = None) -> int:
        """
        Create a room and enrol its creator as the first admin member.

        Args:
            room_name: Display name of the room
            creator_id: ID of the creating user
            password: Optional join password; stored as a bcrypt hash

        Returns:
            The new room_id

        Raises:
            InvalidRequestException: If the name is blank
            UserNotFoundException: If the creator does not exist
        """
        room_name = (room_name or "").strip()
        if not room_name:
            raise InvalidRequestException(detail="room_name must not be blank")

        creator = await self.gateway.fetch_one(
            select(User.user_id).where(User.user_id == creator_id, User.is_deleted.is_(False))
        )
        if creator is None:
            raise UserNotFoundException(detail="Creator not found")

        room_id = await self.gateway.insert(
            Room,
            {
                "room_name": room_name,
                "creator_id": creator_id,
                "password_hash": hash_password(password) if password else None,
            },
            actor_id=creator_id,
        )
        await self.gateway.insert(
            RoomUser,
            {"room_id": room_id, "user_id": creator_id, "is_admin": True, "joined_at": utcnow()},
            actor_id=creator_id,
        )
        logger.info(f"User {creator_id} created room {room_id}")
        return room_id

    async def list(self) -> List[RoomView]:
        rows = await self.gateway.fetch_all(_room_query().order_by(Room.room_id))
        return [_to_view(row) for row in rows]

    async def get_by_id(self, room_id: int) -> RoomView:
        row = await self.gateway.fetch_one(_room_query().where(Room.room_id == room_id))
        if row is None:
            raise RoomNotFoundException()
        return _to_view(row)

    async def verify_password(self, room_id: int, password: Optional[str]) -> bool:
        """True when the room is open or ``password`` matches its hash."""
        row = await self.gateway.fetch_one(
            select(Room.password_hash).where(Room.room_id == room_id, Room.is_deleted.is_(False))
        )
        if row is None:
            raise RoomNotFoundException()
        if row.password_hash is None:
            return True
        if not password:
            return False
        return verify_password(password, row.password_hash)

    async def is_admin(self, room_id: int, user_id: int) -> bool:
        row = await self.gateway.fetch_one(
            select(RoomUser.is_admin).where(
                RoomUser.room_id == room_id,
                RoomUser.user_id == user_id,
                RoomUser.is_deleted.is_(False),
            )
        )
        return bool(row and row.is_admin)

    async def require_admin(self, room_id: int, user_id: int) -> None:
        if not await self.is_admin(room_id, user_id):
            raise ForbiddenException(detail="Only room admins can do this")

    @transactional
    async def update_name(self, room_id: int, new_name: str, actor_id: int) -> None:
        new_name = (new_name or "").strip()
        if not new_name:
            raise InvalidRequestException(detail="room_name must not be blank")
        await self.get_by_id(room_id)
        await self.require_admin(room_id, actor_id)
        await self.gateway.update(
            Room, Room.room_id == room_id, values={"room_name": new_name}, actor_id=actor_id
        )

    @transactional
    async def update_creator(
        self,
        room_id: int,
        new_creator_id: int,
        actor_id: int,
        system: bool = False,
    ) -> None:
        """
        Hand the creator role to another admin.

        ``system`` marks a call made by creator re-election, which is allowed
        even though the actor is not the current creator.
        """
        room = await self.get_by_id(room_id)
        if not system and room.creator_id != actor_id:
            raise ForbiddenException(detail="Only the room creator can transfer ownership")
        if not await self.is_admin(room_id, new_creator_id):
            raise InvalidRequestException(detail="New creator must be an admin member of the room")
        await self.gateway.update(
            Room, Room.room_id == room_id, values={"creator_id": new_creator_id}, actor_id=actor_id
        )

    @transactional
    async def soft_delete(self, room_id: int, actor_id: int, system: bool = False) -> None:
        """
        Delete a room together with its memberships and pending invites.
        Deleting an already deleted room does nothing.
        """
        row = await self.gateway.fetch_one(select(Room.is_deleted).where(Room.room_id == room_id))
        if row is None:
            raise RoomNotFoundException()
        current = RoomState.DELETED if row.is_deleted else RoomState.ACTIVE
        if current is RoomState.DELETED:
            return
        transition_room(current, RoomState.DELETED)
        if not system:
            await self.require_admin(room_id, actor_id)

        await self.gateway.soft_delete(RoomUser, RoomUser.room_id == room_id, actor_id=actor_id)
        await self.gateway.soft_delete(
            Invite,
            Invite.room_id == room_id,
            Invite.state == InviteState.PENDING,
            actor_id=actor_id,
        )
        await self.gateway.soft_delete(Room, Room.room_id == room_id, actor_id=actor_id)
        logger.info(f"Room {room_id} deleted by user {actor_id}")
