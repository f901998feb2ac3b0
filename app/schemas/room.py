from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import List, Optional

from app.core.exceptions import IllegalStateTransitionException
from app.schemas.common import Envelope

class RoomState(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"

ROOM_TRANSITIONS = {
    RoomState.ACTIVE: {RoomState.DELETED},
    RoomState.DELETED: set(),
}

def transition_room(current: RoomState, target: RoomState) -> RoomState:
    if target not in ROOM_TRANSITIONS[current]:
        raise IllegalStateTransitionException(
            detail=f"Room cannot move from {current.value} to {target.value}"
        )
    return target

def _strip_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("room_name must not be blank")
    return value

class CreateRoomRequest(BaseModel):
    room_name: str = Field(..., min_length=1, max_length=100, description="Room name")
    password: Optional[str] = Field(default=None, min_length=1, max_length=72)

    @field_validator("room_name")
    @classmethod
    def strip_room_name(cls, value: str) -> str:
        return _strip_name(value)

class UpdateRoomRequest(BaseModel):
    room_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("room_name")
    @classmethod
    def strip_room_name(cls, value: str) -> str:
        return _strip_name(value)

class UpdateCreatorRequest(BaseModel):
    user_id: int

class JoinRoomRequest(BaseModel):
    password: Optional[str] = None

class RoomView(BaseModel):
    room_id: int
    room_name: str
    creator_id: int
    creator_name: str
    has_password: bool
    image_url: Optional[str] = None

class MemberView(BaseModel):
    room_user_id: int
    room_id: int
    user_id: int
    display_name: str
    image_url: Optional[str] = None
    is_admin: bool

class MemberDetail(BaseModel):
    name: str
    is_admin: bool
    user_image_url: str
    room_user_id: int

class ChatRoom(BaseModel):
    room_id: int
    author_id: str
    author_name: str
    preview: str
    is_joined: bool
    current_room_user_id: Optional[int] = None
    has_password: bool
    chat_name: str
    chat_image_url: str
    member_details: List[MemberDetail] = []

class RoomCreatedResponse(Envelope):
    room_id: int

class ChatRoomListResponse(Envelope):
    chat_rooms: List[ChatRoom] = []

class ChatRoomResponse(Envelope):
    chat_room: ChatRoom

class JoinRoomResponse(Envelope):
    room_user_id: int

class MemberListResponse(Envelope):
    members: List[MemberView] = []
