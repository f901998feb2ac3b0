from typing import Dict, Iterable, List

from sqlalchemy import func, select

from app.database.gateway import DatabaseGateway, transactional
from app.models.message import Message
from app.models.user import User
from app.repositories.membership_repository import MembershipRepository
from app.schemas.message import MessageView
from app.utils.clock import utcnow


def _message_query():
    return (
        select(
            Message.message_id,
            Message.room_id,
            Message.sender_id,
            Message.content,
            Message.created_at,
            User.display_name.label("sender_name"),
        )
        .join(User, Message.sender_id == User.user_id)
        .where(Message.is_deleted.is_(False))
    )


def _to_view(row) -> MessageView:
    return MessageView(
        message_id=row.message_id,
        room_id=row.room_id,
        sender_id=row.sender_id,
        sender_name=row.sender_name,
        content=row.content,
        created_at=row.created_at,
    )


class ChatService:
    def __init__(self, gateway: DatabaseGateway, memberships: MembershipRepository):
        self.gateway = gateway
        self.memberships = memberships

    @transactional
    async def send_message(self, room_id: int, sender_id: int, content: str) -> MessageView:
        """
        Post a message to a room the sender belongs to.

        Raises:
            RoomNotFoundException: If the room does not exist
            ForbiddenException: If the sender is not a member
        """
        await self.memberships.rooms.get_by_id(room_id)
        await self.memberships.require_member(room_id, sender_id)

        message_id = await self.gateway.insert(
            Message,
            {"room_id": room_id, "sender_id": sender_id, "content": content, "created_at": utcnow()},
            actor_id=sender_id,
        )
        row = await self.gateway.fetch_one(_message_query().where(Message.message_id == message_id))
        return _to_view(row)

    async def get_room_messages(self, room_id: int, user_id: int, limit: int = 50, offset: int = 0) -> List[MessageView]:
        """Newest first, paged with limit/offset. Members only."""
        await self.memberships.rooms.get_by_id(room_id)
        await self.memberships.require_member(room_id, user_id)
        rows = await self.gateway.fetch_all(
            _message_query()
            .where(Message.room_id == room_id)
            .order_by(Message.created_at.desc(), Message.message_id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [_to_view(row) for row in rows]

    async def latest_previews(self, room_ids: Iterable[int]) -> Dict[int, str]:
        """Content of the newest message per room, for the room list preview."""
        room_ids = list(room_ids)
        if not room_ids:
            return {}
        ranked = (
            select(
                Message.room_id,
                Message.content,
                func.row_number().over(
                    partition_by=Message.room_id,
                    order_by=(Message.created_at.desc(), Message.message_id.desc()),
                ).label("row_num"),
            )
            .where(Message.room_id.in_(room_ids), Message.is_deleted.is_(False))
            .subquery()
        )
        rows = await self.gateway.fetch_all(
            select(ranked.c.room_id, ranked.c.content).where(ranked.c.row_num == 1)
        )
        return {row.room_id: row.content for row in rows}
