from typing import List

from sqlalchemy import select
from sqlalchemy.orm import aliased

from app.core.exceptions import (
    AlreadyMemberException,
    DuplicateInviteException,
    ForbiddenException,
    InviteNotFoundException,
    UserNotFoundException,
)
from app.database.gateway import DatabaseGateway, transactional
from app.models.invite import Invite
from app.models.room import Room
from app.models.user import User
from app.repositories.membership_repository import MembershipRepository
from app.repositories.user_repository import UserRepository
from app.schemas.invite import InviteState, InviteView, transition_invite
from app.utils.clock import utcnow

Inviter = aliased(User)


class InviteRepository:
    def __init__(self, gateway: DatabaseGateway, memberships: MembershipRepository, users: UserRepository):
        self.gateway = gateway
        self.memberships = memberships
        self.users = users

    @transactional
    async def create(self, room_id: int, inviter_id: int, invitee_device_id: str) -> int:
        """
        Invite the user registered on ``invitee_device_id`` into a room.

        Raises:
            RoomNotFoundException: If the room does not exist
            ForbiddenException: If the inviter is not a member
            UserNotFoundException: If no user owns the device id
            AlreadyMemberException: If the invitee is already in the room
            DuplicateInviteException: If a pending invite already exists
        """
        await self.memberships.rooms.get_by_id(room_id)
        await self.memberships.require_member(room_id, inviter_id)

        invitee = await self.users.get_by_device_id(invitee_device_id)
        if invitee is None:
            raise UserNotFoundException(detail="No user is registered on that device")
        if await self.memberships.get_membership(room_id, invitee.user_id):
            raise AlreadyMemberException()

        pending = await self.gateway.fetch_one(
            select(Invite.invite_id).where(
                Invite.room_id == room_id,
                Invite.invitee_user_id == invitee.user_id,
                Invite.state == InviteState.PENDING,
                Invite.is_deleted.is_(False),
            )
        )
        if pending:
            raise DuplicateInviteException()

        return await self.gateway.insert(
            Invite,
            {
                "room_id": room_id,
                "inviter_user_id": inviter_id,
                "invitee_user_id": invitee.user_id,
                "state": InviteState.PENDING,
                "created_at": utcnow(),
            },
            actor_id=inviter_id,
        )

    async def list_pending_for_user(self, user_id: int) -> List[InviteView]:
        rows = await self.gateway.fetch_all(
            select(
                Invite.invite_id,
                Invite.room_id,
                Invite.inviter_user_id,
                Invite.invitee_user_id,
                Invite.state,
                Invite.created_at,
                Room.room_name,
                Inviter.display_name.label("inviter_name"),
            )
            .join(Room, Invite.room_id == Room.room_id)
            .join(Inviter, Invite.inviter_user_id == Inviter.user_id)
            .where(
                Invite.invitee_user_id == user_id,
                Invite.state == InviteState.PENDING,
                Invite.is_deleted.is_(False),
                Room.is_deleted.is_(False),
            )
            .order_by(Invite.invite_id)
        )
        return [
            InviteView(
                invite_id=row.invite_id,
                room_id=row.room_id,
                room_name=row.room_name,
                inviter_user_id=row.inviter_user_id,
                inviter_name=row.inviter_name,
                invitee_user_id=row.invitee_user_id,
                state=row.state,
                created_at=row.created_at,
            )
            for row in rows
        ]

    @transactional
    async def accept(self, invite_id: int, actor_id: int) -> int:
        """Accept an invite and create the membership; returns the room_user_id."""
        invite = await self._get(invite_id)
        if invite.invitee_user_id != actor_id:
            raise ForbiddenException(detail="Only the invitee can accept this invite")
        await self._transition(invite, InviteState.ACCEPTED, actor_id)
        await self.memberships.rooms.get_by_id(invite.room_id)
        return await self.memberships.add_member(invite.room_id, actor_id, actor_id=actor_id)

    @transactional
    async def reject(self, invite_id: int, actor_id: int) -> None:
        invite = await self._get(invite_id)
        if invite.invitee_user_id != actor_id:
            raise ForbiddenException(detail="Only the invitee can reject this invite")
        await self._transition(invite, InviteState.REJECTED, actor_id)

    @transactional
    async def revoke(self, invite_id: int, actor_id: int) -> None:
        invite = await self._get(invite_id)
        if invite.inviter_user_id != actor_id and not await self.memberships.rooms.is_admin(invite.room_id, actor_id):
            raise ForbiddenException(detail="Only the inviter or a room admin can revoke this invite")
        await self._transition(invite, InviteState.REVOKED, actor_id)

    async def _get(self, invite_id: int):
        row = await self.gateway.fetch_one(
            select(
                Invite.invite_id,
                Invite.room_id,
                Invite.inviter_user_id,
                Invite.invitee_user_id,
                Invite.state,
            ).where(Invite.invite_id == invite_id, Invite.is_deleted.is_(False))
        )
        if row is None:
            raise InviteNotFoundException()
        return row

    async def _transition(self, invite, target: InviteState, actor_id: int) -> None:
        state = transition_invite(invite.state, target)
        await self.gateway.update(
            Invite,
            Invite.invite_id == invite.invite_id,
            values={"state": state, "responded_at": utcnow()},
            actor_id=actor_id,
        )
