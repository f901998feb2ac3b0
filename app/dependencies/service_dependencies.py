from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.gateway import DatabaseGateway
from app.database.postgres import get_db_session
from app.repositories.invite_repository import InviteRepository
from app.repositories.membership_repository import MembershipRepository
from app.repositories.room_repository import RoomRepository
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.chat_service import ChatService
from app.services.room_service import RoomService

def get_gateway(db: AsyncSession = Depends(get_db_session)) -> DatabaseGateway:
    """
    Dependency that provides the request's DatabaseGateway. FastAPI caches it
    per request, so every repository below shares one session and transaction.
    """
    return DatabaseGateway(db)

def get_user_repository(gateway: DatabaseGateway = Depends(get_gateway)) -> UserRepository:
    return UserRepository(gateway)

def get_room_repository(gateway: DatabaseGateway = Depends(get_gateway)) -> RoomRepository:
    return RoomRepository(gateway)

def get_membership_repository(
    gateway: DatabaseGateway = Depends(get_gateway),
    rooms: RoomRepository = Depends(get_room_repository),
) -> MembershipRepository:
    return MembershipRepository(gateway, rooms)

def get_invite_repository(
    gateway: DatabaseGateway = Depends(get_gateway),
    memberships: MembershipRepository = Depends(get_membership_repository),
    users: UserRepository = Depends(get_user_repository),
) -> InviteRepository:
    return InviteRepository(gateway, memberships, users)

def get_auth_service(
    gateway: DatabaseGateway = Depends(get_gateway),
    users: UserRepository = Depends(get_user_repository),
) -> AuthService:
    """
    Dependency that provides an instance of AuthService with an active database session.
    """
    return AuthService(gateway, users)

def get_chat_service(
    gateway: DatabaseGateway = Depends(get_gateway),
    memberships: MembershipRepository = Depends(get_membership_repository),
) -> ChatService:
    return ChatService(gateway, memberships)

def get_room_service(
    rooms: RoomRepository = Depends(get_room_repository),
    memberships: MembershipRepository = Depends(get_membership_repository),
    chat_service: ChatService = Depends(get_chat_service),
) -> RoomService:
    """
    Dependency that provides the RoomService used to assemble room listings.
    """
    return RoomService(rooms, memberships, chat_service)
