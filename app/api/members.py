from fastapi import APIRouter, Depends

from app.dependencies.auth_dependencies import get_current_actor
from app.dependencies.service_dependencies import get_membership_repository
from app.repositories.membership_repository import MembershipRepository
from app.schemas.auth import Actor
from app.schemas.common import Envelope

router = APIRouter(prefix="/members", tags=["members"])

@router.post("/{room_user_id}/leave", response_model=Envelope)
async def leave_room(
    room_user_id: int,
    actor: Actor = Depends(get_current_actor),
    memberships: MembershipRepository = Depends(get_membership_repository)
):
    """
    Leave a room, or remove another member when the caller is an admin.
    """
    await memberships.leave(room_user_id, actor.user_id)
    return Envelope()

@router.post("/{room_user_id}/promote", response_model=Envelope)
async def promote_member(
    room_user_id: int,
    actor: Actor = Depends(get_current_actor),
    memberships: MembershipRepository = Depends(get_membership_repository)
):
    await memberships.promote(room_user_id, actor.user_id)
    return Envelope()

@router.post("/{room_user_id}/demote", response_model=Envelope)
async def demote_member(
    room_user_id: int,
    actor: Actor = Depends(get_current_actor),
    memberships: MembershipRepository = Depends(get_membership_repository)
):
    await memberships.demote(room_user_id, actor.user_id)
    return Envelope()
