from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.error_handler import (
    custom_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.core.exceptions import BaseAPIException

from app.api.auth import router as auth_router
from app.api.invites import router as invite_router
from app.api.members import router as member_router
from app.api.messages import router as message_router
from app.api.rooms import router as room_router
from app.api.users import router as user_router
from app.database.postgres import initialize_db
from app.utils.timing_middleware import TimingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    await initialize_db()
    yield

app = FastAPI(title="Chat Room Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(BaseAPIException, custom_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)
app.add_middleware(TimingMiddleware)

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(room_router)
app.include_router(member_router)
app.include_router(invite_router)
app.include_router(message_router)
