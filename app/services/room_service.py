from typing import Dict, List

from app.core.config import settings
from app.repositories.membership_repository import MembershipRepository
from app.repositories.room_repository import RoomRepository
from app.schemas.room import ChatRoom, MemberDetail, MemberView, RoomView
from app.services.chat_service import ChatService


class RoomService:
    """
    Builds the ``ChatRoom`` documents the mobile client renders, combining
    rooms, their members and the latest message of each room.
    """

    def __init__(self, rooms: RoomRepository, memberships: MembershipRepository, chat_service: ChatService):
        self.rooms = rooms
        self.memberships = memberships
        self.chat_service = chat_service

    async def get_chat_rooms(self, user_id: int) -> List[ChatRoom]:
        rooms = await self.rooms.list()
        if not rooms:
            return []

        room_ids = [room.room_id for room in rooms]
        members_map = await self.memberships.list_by_rooms(room_ids)
        previews_map = await self.chat_service.latest_previews(room_ids)

        return [
            self._to_chat_room(room, members_map.get(room.room_id, []), previews_map, user_id)
            for room in rooms
        ]

    async def get_chat_room(self, room_id: int, user_id: int) -> ChatRoom:
        room = await self.rooms.get_by_id(room_id)
        members = await self.memberships.list_by_room(room_id)
        previews_map = await self.chat_service.latest_previews([room_id])
        return self._to_chat_room(room, members, previews_map, user_id)

    @staticmethod
    def _to_chat_room(
        room: RoomView,
        members: List[MemberView],
        previews_map: Dict[int, str],
        user_id: int,
    ) -> ChatRoom:
        current = next((m for m in members if m.user_id == user_id), None)
        return ChatRoom(
            room_id=room.room_id,
            author_id=str(room.creator_id),
            author_name=room.creator_name,
            preview=previews_map.get(room.room_id, ""),
            is_joined=current is not None,
            current_room_user_id=current.room_user_id if current else None,
            has_password=room.has_password,
            chat_name=room.room_name,
            chat_image_url=room.image_url or "",
            member_details=[
                MemberDetail(
                    name=member.display_name,
                    is_admin=member.is_admin,
                    user_image_url=member.image_url or settings.default_user_image_url,
                    room_user_id=member.room_user_id,
                )
                for member in members
            ],
        )
