from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import InvalidTokenException
from app.dependencies.service_dependencies import get_auth_service
from app.schemas.auth import Actor
from app.services.auth_service import AuthService

# auto_error=False so a missing header is answered with our own envelope.
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Actor:
    """
    Dependency for routes that require a Bearer access token.
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenException(detail="Token not provided")
    return await auth_service.validate(credentials.credentials)


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[Actor]:
    """
    Dependency for routes where authentication is optional. A header that is
    present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return await auth_service.validate(credentials.credentials)
