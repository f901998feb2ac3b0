from fastapi import APIRouter, Depends

from app.dependencies.auth_dependencies import get_current_actor
from app.dependencies.service_dependencies import get_auth_service
from app.schemas.auth import Actor, LoginInfo, LoginRequest, LoginResponse, RefreshRequest, RefreshResponse
from app.schemas.common import Envelope
from app.services.auth_service import AuthService

router = APIRouter(tags=["auth"])

@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Authenticate a user and issue a token pair bound to the calling device.
    """
    user, tokens = await auth_service.login_user(request)
    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        info=LoginInfo(
            display_name=user.display_name,
            username=user.username,
            image_url=user.image_url,
        ),
    )

@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Exchange a refresh token for a new token pair.
    """
    tokens = await auth_service.refresh(request.refresh_token, request.device_id)
    return RefreshResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)

@router.post("/logout", response_model=Envelope)
async def logout(
    actor: Actor = Depends(get_current_actor),
    auth_service: AuthService = Depends(get_auth_service)
):
    await auth_service.logout(actor)
    return Envelope()
