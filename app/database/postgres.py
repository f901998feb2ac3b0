# app/database/postgres.py
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from app.models.base import Base
from app.models import user, room, room_user, invite, token, message  # noqa: F401  (register tables)


def _engine_options(database_url: str) -> dict:
    options = {"echo": False, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        # Bounded pool; acquisitions past pool_timeout raise sqlalchemy.exc.TimeoutError.
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

async_session = sessionmaker(
    engine, expire_on_commit=False, class_=AsyncSession
)

async def get_db_session():
    """
    Provide a database session for dependency injection.

    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

async def initialize_db():
    """
    Initialize the database by creating all tables defined in SQLAlchemy models.
    This method is idempotent and safe to run at startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
