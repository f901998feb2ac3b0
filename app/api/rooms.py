from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies.auth_dependencies import get_current_actor
from app.dependencies.service_dependencies import (
    get_membership_repository,
    get_room_repository,
    get_room_service,
)
from app.repositories.membership_repository import MembershipRepository
from app.repositories.room_repository import RoomRepository
from app.schemas.auth import Actor
from app.schemas.common import Envelope
from app.schemas.room import (
    ChatRoomListResponse,
    ChatRoomResponse,
    CreateRoomRequest,
    JoinRoomRequest,
    JoinRoomResponse,
    MemberListResponse,
    RoomCreatedResponse,
    UpdateCreatorRequest,
    UpdateRoomRequest,
)
from app.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["rooms"])

@router.get("", response_model=ChatRoomListResponse)
async def get_chat_rooms(
    device_id: Optional[str] = Query(None, description="Accepted for older clients; the token identifies the device"),
    actor: Actor = Depends(get_current_actor),
    room_service: RoomService = Depends(get_room_service)
):
    """
    List every live room, with membership details from the caller's point of view.
    """
    return ChatRoomListResponse(chat_rooms=await room_service.get_chat_rooms(actor.user_id))

@router.post("", response_model=RoomCreatedResponse)
async def create_room(
    request: CreateRoomRequest,
    actor: Actor = Depends(get_current_actor),
    rooms: RoomRepository = Depends(get_room_repository)
):
    """
    Create a room; the caller becomes its creator and first admin.
    """
    room_id = await rooms.create(request.room_name, actor.user_id, request.password)
    return RoomCreatedResponse(room_id=room_id)

@router.get("/{room_id}", response_model=ChatRoomResponse)
async def get_chat_room(
    room_id: int,
    actor: Actor = Depends(get_current_actor),
    room_service: RoomService = Depends(get_room_service)
):
    return ChatRoomResponse(chat_room=await room_service.get_chat_room(room_id, actor.user_id))

@router.patch("/{room_id}", response_model=Envelope)
async def rename_room(
    room_id: int,
    request: UpdateRoomRequest,
    actor: Actor = Depends(get_current_actor),
    rooms: RoomRepository = Depends(get_room_repository)
):
    await rooms.update_name(room_id, request.room_name, actor.user_id)
    return Envelope()

@router.delete("/{room_id}", response_model=Envelope)
async def delete_room(
    room_id: int,
    actor: Actor = Depends(get_current_actor),
    rooms: RoomRepository = Depends(get_room_repository)
):
    await rooms.soft_delete(room_id, actor.user_id)
    return Envelope()

@router.put("/{room_id}/creator", response_model=Envelope)
async def transfer_room(
    room_id: int,
    request: UpdateCreatorRequest,
    actor: Actor = Depends(get_current_actor),
    rooms: RoomRepository = Depends(get_room_repository)
):
    """
    Hand the creator role to another admin of the room.
    """
    await rooms.update_creator(room_id, request.user_id, actor.user_id)
    return Envelope()

@router.post("/{room_id}/join", response_model=JoinRoomResponse)
async def join_room(
    room_id: int,
    request: Optional[JoinRoomRequest] = None,
    actor: Actor = Depends(get_current_actor),
    memberships: MembershipRepository = Depends(get_membership_repository)
):
    """
    Join a room. Password-gated rooms require the matching password.
    """
    password = request.password if request else None
    room_user_id = await memberships.join(room_id, actor.user_id, password)
    return JoinRoomResponse(room_user_id=room_user_id)

@router.get("/{room_id}/members", response_model=MemberListResponse)
async def list_members(
    room_id: int,
    actor: Actor = Depends(get_current_actor),
    memberships: MembershipRepository = Depends(get_membership_repository)
):
    return MemberListResponse(members=await memberships.list_by_room(room_id))
