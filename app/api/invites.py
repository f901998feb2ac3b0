from fastapi import APIRouter, Depends

from app.dependencies.auth_dependencies import get_current_actor
from app.dependencies.service_dependencies import get_invite_repository
from app.repositories.invite_repository import InviteRepository
from app.schemas.auth import Actor
from app.schemas.common import Envelope
from app.schemas.invite import CreateInviteRequest, InviteCreatedResponse, InviteListResponse
from app.schemas.room import JoinRoomResponse

router = APIRouter(tags=["invites"])

@router.post("/rooms/{room_id}/invites", response_model=InviteCreatedResponse)
async def create_invite(
    room_id: int,
    request: CreateInviteRequest,
    actor: Actor = Depends(get_current_actor),
    invites: InviteRepository = Depends(get_invite_repository)
):
    """
    Invite the user registered on ``invitee_device_id`` into the room.
    """
    invite_id = await invites.create(room_id, actor.user_id, request.invitee_device_id)
    return InviteCreatedResponse(invite_id=invite_id)

@router.get("/invites", response_model=InviteListResponse)
async def list_pending_invites(
    actor: Actor = Depends(get_current_actor),
    invites: InviteRepository = Depends(get_invite_repository)
):
    return InviteListResponse(invites=await invites.list_pending_for_user(actor.user_id))

@router.post("/invites/{invite_id}/accept", response_model=JoinRoomResponse)
async def accept_invite(
    invite_id: int,
    actor: Actor = Depends(get_current_actor),
    invites: InviteRepository = Depends(get_invite_repository)
):
    room_user_id = await invites.accept(invite_id, actor.user_id)
    return JoinRoomResponse(room_user_id=room_user_id)

@router.post("/invites/{invite_id}/reject", response_model=Envelope)
async def reject_invite(
    invite_id: int,
    actor: Actor = Depends(get_current_actor),
    invites: InviteRepository = Depends(get_invite_repository)
):
    await invites.reject(invite_id, actor.user_id)
    return Envelope()

@router.post("/invites/{invite_id}/revoke", response_model=Envelope)
async def revoke_invite(
    invite_id: int,
    actor: Actor = Depends(get_current_actor),
    invites: InviteRepository = Depends(get_invite_repository)
):
    await invites.revoke(invite_id, actor.user_id)
    return Envelope()
