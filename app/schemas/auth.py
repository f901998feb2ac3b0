from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import Envelope

class LoginRequest(BaseModel):
    username: str
    password: str
    device_id: str = Field(..., min_length=1, max_length=20)
    device_name: str = Field(default="", max_length=100)

class RefreshRequest(BaseModel):
    refresh_token: str
    device_id: str = Field(..., min_length=1, max_length=20)

class LoginInfo(BaseModel):
    display_name: str
    username: str
    image_url: Optional[str] = None

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str

class LoginResponse(Envelope):
    access_token: str
    refresh_token: str
    info: LoginInfo

class RefreshResponse(Envelope):
    access_token: str
    refresh_token: str

@dataclass(frozen=True)
class Actor:
    """The authenticated user a request executes on behalf of."""
    user_id: int
    device_id: str
