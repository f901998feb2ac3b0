from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.engine import Row

from app.core.exceptions import InvalidRequestException, UserNotFoundException, UsernameTakenException
from app.core.security import generate_device_id, hash_password, is_valid_device_id
from app.database.gateway import DatabaseGateway, transactional
from app.models.room_user import RoomUser
from app.models.user import User
from app.schemas.user import UserView

_USER_COLUMNS = (User.user_id, User.device_id, User.display_name, User.username, User.image_url)


def _to_view(row: Row) -> UserView:
    return UserView(
        user_id=row.user_id,
        device_id=row.device_id,
        display_name=row.display_name,
        username=row.username,
        image_url=row.image_url,
    )


class UserRepository:
    def __init__(self, gateway: DatabaseGateway):
        self.gateway = gateway

    async def get_by_id(self, user_id: int) -> UserView:
        row = await self.gateway.fetch_one(
            select(*_USER_COLUMNS).where(User.user_id == user_id, User.is_deleted.is_(False))
        )
        if row is None:
            raise UserNotFoundException()
        return _to_view(row)

    async def get_by_device_id(self, device_id: str) -> Optional[UserView]:
        row = await self.gateway.fetch_one(
            select(*_USER_COLUMNS).where(User.device_id == device_id, User.is_deleted.is_(False))
        )
        return _to_view(row) if row else None

    async def get_credentials(self, username: str) -> Optional[Row]:
        """Return ``(user_id, hashed_password)`` for a live user with this username."""
        return await self.gateway.fetch_one(
            select(User.user_id, User.hashed_password).where(
                User.username == username, User.is_deleted.is_(False)
            )
        )

    async def list_users(self, exclude_room_id: Optional[int] = None) -> List[UserView]:
        """
        List live users. With ``exclude_room_id`` the current members of that
        room are left out, which is what the invite picker shows.
        """
        query = select(*_USER_COLUMNS).where(User.is_deleted.is_(False))
        if exclude_room_id is not None:
            members = select(RoomUser.user_id).where(
                RoomUser.room_id == exclude_room_id, RoomUser.is_deleted.is_(False)
            )
            query = query.where(User.user_id.not_in(members))
        rows = await self.gateway.fetch_all(query.order_by(User.display_name, User.user_id))
        return [_to_view(row) for row in rows]

    @transactional
    async def upsert_by_device_id(self, display_name: str, device_id: str) -> UserView:
        """
        Register a device or rename its user.

        An empty ``device_id`` gets a freshly minted one. An unseen id creates a
        new user; a known id updates that user's display name.
        """
        display_name = display_name.strip()
        if not display_name:
            raise InvalidRequestException(detail="name must not be blank")

        if not device_id:
            device_id = await self._mint_device_id()
        elif not is_valid_device_id(device_id):
            raise InvalidRequestException(detail="device_id must be 20 alphanumeric characters")

        existing = await self.get_by_device_id(device_id)
        if existing:
            await self.gateway.update(
                User,
                User.user_id == existing.user_id,
                values={"display_name": display_name},
                actor_id=existing.user_id,
            )
            return await self.get_by_id(existing.user_id)

        user_id = await self.gateway.insert(
            User,
            {"device_id": device_id, "display_name": display_name},
            actor_id=None,
        )
        # A self-registration is authored by the new user.
        await self.gateway.update(User, User.user_id == user_id, values={}, actor_id=user_id)
        return await self.get_by_id(user_id)

    @transactional
    async def set_credentials(self, user_id: int, username: str, password: str) -> None:
        taken = await self.gateway.fetch_one(
            select(User.user_id).where(User.username == username, User.user_id != user_id)
        )
        if taken:
            raise UsernameTakenException()
        await self.get_by_id(user_id)
        await self.gateway.update(
            User,
            User.user_id == user_id,
            values={"username": username, "hashed_password": hash_password(password)},
            actor_id=user_id,
        )

    async def _mint_device_id(self) -> str:
        while True:
            candidate = generate_device_id()
            taken = await self.gateway.fetch_one(select(User.user_id).where(User.device_id == candidate))
            if taken is None:
                return candidate
