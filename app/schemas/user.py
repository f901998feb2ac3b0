from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.common import Envelope

class RegisterUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    # Empty on first launch; the server mints one.
    device_id: str = Field(default="", max_length=20)

class SetCredentialsRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8, max_length=72)

class UserView(BaseModel):
    user_id: int
    device_id: str
    display_name: str
    username: Optional[str] = None
    image_url: Optional[str] = None

class RegisteredUser(BaseModel):
    user_id: int
    display_name: str
    user_image_url: str
    device_id: str

class RegisterUserResponse(Envelope):
    user: RegisteredUser
    # Only issued for a new device or to the signed-in owner of the device.
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

class UserSummary(BaseModel):
    user_id: int
    device_id: str
    name: str
    user_image_url: str

class UserListResponse(Envelope):
    users: List[UserSummary] = []
