from datetime import timedelta
from typing import Optional

from sqlalchemy import select

from app.core.config import settings
from app.core.exceptions import (
    BaseAPIException,
    InvalidCredentialsException,
    InvalidTokenException,
    TokenExpiredException,
)
from app.core.log_config import logger
from app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_refresh_token,
    verify_password,
    verify_token,
)
from app.database.gateway import DatabaseGateway
from app.models.token import Token
from app.repositories.user_repository import UserRepository
from app.schemas.auth import Actor, LoginRequest, TokenPair
from app.schemas.user import UserView
from app.utils.clock import utcnow
from app.utils.locks import KeyedLock

# Serializes token writes per (user_id, device_id) within this process; the
# unique Token.device_id constraint guards across processes.
token_locks = KeyedLock()


class AuthService:
    def __init__(self, gateway: DatabaseGateway, users: UserRepository):
        self.gateway = gateway
        self.users = users

    async def login_user(self, request: LoginRequest) -> tuple[UserView, TokenPair]:
        """
        Handles the logic for logging in a user.

        Issues a fresh token pair bound to the login device, replacing any pair
        that device held before.

        Returns:
            A tuple (user, token_pair)
        """
        credentials = await self.users.get_credentials(request.username)
        if (
            credentials is None
            or credentials.hashed_password is None
            or not verify_password(request.password, credentials.hashed_password)
        ):
            raise InvalidCredentialsException()

        user = await self.users.get_by_id(credentials.user_id)
        pair = await self.issue_for_device(user.user_id, request.device_id, request.device_name)
        logger.info(f"User {user.user_id} logged in on device {request.device_id}")
        return user, pair

    async def issue_for_device(self, user_id: int, device_id: str, device_name: Optional[str] = None) -> TokenPair:
        async with token_locks.hold((user_id, device_id)):
            return await self.gateway.run_in_transaction(
                lambda: self._store_pair(user_id, device_id, device_name)
            )

    async def validate(self, access_token: str) -> Actor:
        """
        Resolve an access token to the acting user.

        Raises:
            TokenExpiredException: If the token has expired
            InvalidTokenException: If the token is malformed or its device has
                since been issued a newer pair
        """
        payload = verify_token(access_token)
        user_id = payload.get("user_id")
        device_id = payload.get("device_id")
        jti = payload.get("jti")
        if user_id is None or not device_id or not jti:
            raise InvalidTokenException()

        active = await self.gateway.fetch_one(
            select(Token.user_id, Token.access_jti).where(
                Token.device_id == device_id, Token.is_deleted.is_(False)
            )
        )
        if active is None or active.user_id != user_id or active.access_jti != jti:
            raise InvalidTokenException(detail="Token is no longer active")

        try:
            await self.users.get_by_id(user_id)
        except BaseAPIException:
            raise InvalidTokenException(detail="User not found")
        return Actor(user_id=user_id, device_id=device_id)

    async def refresh(self, refresh_token: str, device_id: str) -> TokenPair:
        """Rotate both tokens of a device, given its current refresh token."""
        token_hash = hash_refresh_token(refresh_token)
        row = await self._find_by_refresh_hash(token_hash, device_id)
        if row is None:
            raise InvalidTokenException(detail="Invalid refresh token")

        async with token_locks.hold((row.user_id, device_id)):
            async def rotate() -> TokenPair:
                # Re-read under the lock: a concurrent refresh may have rotated it.
                current = await self._find_by_refresh_hash(token_hash, device_id)
                if current is None:
                    raise InvalidTokenException(detail="Invalid refresh token")
                if current.refresh_expires_at <= utcnow():
                    raise TokenExpiredException(detail="Refresh token has expired")
                return await self._store_pair(current.user_id, device_id, current.device_name)

            return await self.gateway.run_in_transaction(rotate)

    async def logout(self, actor: Actor) -> None:
        async with token_locks.hold((actor.user_id, actor.device_id)):
            await self.gateway.run_in_transaction(
                lambda: self.gateway.soft_delete(
                    Token,
                    Token.device_id == actor.device_id,
                    Token.user_id == actor.user_id,
                    actor_id=actor.user_id,
                )
            )

    async def _find_by_refresh_hash(self, token_hash: str, device_id: str):
        return await self.gateway.fetch_one(
            select(Token.user_id, Token.device_name, Token.refresh_expires_at).where(
                Token.device_id == device_id,
                Token.refresh_token_hash == token_hash,
                Token.is_deleted.is_(False),
            )
        )

    async def _store_pair(self, user_id: int, device_id: str, device_name: Optional[str]) -> TokenPair:
        access_token, jti = create_access_token(user_id, device_id)
        refresh_token = create_refresh_token()
        now = utcnow()
        values = {
            "user_id": user_id,
            "device_name": device_name,
            "access_jti": jti,
            "refresh_token_hash": hash_refresh_token(refresh_token),
            "access_expires_at": now + timedelta(minutes=settings.access_token_expiry_minutes),
            "refresh_expires_at": now + timedelta(days=settings.refresh_token_expiry_days),
            "is_deleted": False,
        }

        existing = await self.gateway.fetch_one(select(Token.token_id).where(Token.device_id == device_id))
        if existing:
            await self.gateway.update(Token, Token.token_id == existing.token_id, values=values, actor_id=user_id)
        else:
            await self.gateway.insert(Token, {**values, "device_id": device_id}, actor_id=user_id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)
