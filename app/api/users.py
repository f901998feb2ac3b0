from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.core.exceptions import ForbiddenException, InvalidCredentialsException
from app.dependencies.auth_dependencies import get_current_actor, get_optional_actor
from app.dependencies.service_dependencies import get_auth_service, get_user_repository
from app.repositories.user_repository import UserRepository
from app.schemas.auth import Actor
from app.schemas.common import Envelope
from app.schemas.user import (
    RegisteredUser,
    RegisterUserRequest,
    RegisterUserResponse,
    SetCredentialsRequest,
    UserListResponse,
    UserSummary,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/users", tags=["users"])

@router.post("", response_model=RegisterUserResponse)
async def register_user(
    request: RegisterUserRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    users: UserRepository = Depends(get_user_repository),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a device (empty ``device_id``) or rename the user behind one.

    A new device gets a token pair. A known device only gets a fresh pair when
    the caller is already signed in as its user; anonymous callers can rename
    a device-only user but never receive its tokens, and users with
    credentials must log in instead.
    """
    device_id = request.device_id or (actor.device_id if actor else "")
    owner = await users.get_by_device_id(device_id) if device_id else None
    is_owner = owner is not None and actor is not None and actor.user_id == owner.user_id
    if owner and not is_owner:
        if actor:
            raise ForbiddenException(detail="That device belongs to another user")
        if owner.username:
            raise InvalidCredentialsException(detail="Log in to use this device")

    user = await users.upsert_by_device_id(request.name, device_id)
    response = RegisterUserResponse(
        user=RegisteredUser(
            user_id=user.user_id,
            display_name=user.display_name,
            user_image_url=user.image_url or settings.default_user_image_url,
            device_id=user.device_id,
        ),
    )
    if owner is None or is_owner:
        tokens = await auth_service.issue_for_device(user.user_id, user.device_id)
        response.access_token = tokens.access_token
        response.refresh_token = tokens.refresh_token
    return response

@router.get("", response_model=UserListResponse)
async def list_users(
    room_id: Optional[int] = Query(None, description="Leave out the members of this room"),
    actor: Actor = Depends(get_current_actor),
    users: UserRepository = Depends(get_user_repository),
):
    """
    List users that can be invited, optionally excluding a room's members.
    """
    return UserListResponse(
        users=[
            UserSummary(
                user_id=user.user_id,
                device_id=user.device_id,
                name=user.display_name,
                user_image_url=user.image_url or settings.default_user_image_url,
            )
            for user in await users.list_users(exclude_room_id=room_id)
            if user.user_id != actor.user_id
        ]
    )

@router.put("/me/credentials", response_model=Envelope)
async def set_credentials(
    request: SetCredentialsRequest,
    actor: Actor = Depends(get_current_actor),
    users: UserRepository = Depends(get_user_repository),
):
    """
    Attach a username and password to the current user so they can log in
    from another device.
    """
    await users.set_credentials(actor.user_id, request.username, request.password)
    return Envelope()
