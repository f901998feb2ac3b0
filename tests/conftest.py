import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.gateway import DatabaseGateway
from app.database.postgres import get_db_session
from app.main import app
from app.models.base import Base
from app.repositories.invite_repository import InviteRepository
from app.repositories.membership_repository import MembershipRepository
from app.repositories.room_repository import RoomRepository
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.chat_service import ChatService

DATABASE_URL = "sqlite+aiosqlite:///:memory:"

@pytest.fixture
async def async_session():
    engine = create_async_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session_factory = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with async_session_factory() as session:
        yield session
    await engine.dispose()

@pytest.fixture
def gateway(async_session):
    return DatabaseGateway(async_session)

@pytest.fixture
def users(gateway):
    return UserRepository(gateway)

@pytest.fixture
def rooms(gateway):
    return RoomRepository(gateway)

@pytest.fixture
def memberships(gateway, rooms):
    return MembershipRepository(gateway, rooms)

@pytest.fixture
def invites(gateway, memberships, users):
    return InviteRepository(gateway, memberships, users)

@pytest.fixture
def chat_service(gateway, memberships):
    return ChatService(gateway, memberships)

@pytest.fixture
def auth_service(gateway, users):
    return AuthService(gateway, users)

@pytest.fixture
async def test_user(users):
    return await users.upsert_by_device_id("Test User", "")

@pytest.fixture
async def test_token(auth_service, test_user):
    tokens = await auth_service.issue_for_device(test_user.user_id, test_user.device_id)
    return tokens.access_token

@pytest.fixture
async def client(async_session):
    async def _override():
        yield async_session
    app.dependency_overrides[get_db_session] = _override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture
def register(client):
    """Register a device through the API and return its user id, device id and auth headers."""
    async def _register(name: str = "Ada", device_id: str = ""):
        response = await client.post("/users", json={"name": name, "device_id": device_id})
        body = response.json()
        assert body["success"] == 1, body
        return {
            "user_id": body["user"]["user_id"],
            "device_id": body["user"]["device_id"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
            "refresh_token": body["refresh_token"],
        }
    return _register
