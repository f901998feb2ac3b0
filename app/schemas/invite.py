from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from app.core.exceptions import IllegalStateTransitionException
from app.schemas.common import Envelope

class InviteState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    REVOKED = "revoked"

# Every state other than PENDING is terminal.
INVITE_TRANSITIONS = {
    InviteState.PENDING: {InviteState.ACCEPTED, InviteState.REJECTED, InviteState.REVOKED},
    InviteState.ACCEPTED: set(),
    InviteState.REJECTED: set(),
    InviteState.REVOKED: set(),
}

def transition_invite(current: InviteState, target: InviteState) -> InviteState:
    """Return ``target`` if the invite may move there, else raise."""
    if target not in INVITE_TRANSITIONS[InviteState(current)]:
        raise IllegalStateTransitionException(
            detail=f"Invite cannot move from {InviteState(current).value} to {target.value}"
        )
    return target

class CreateInviteRequest(BaseModel):
    invitee_device_id: str = Field(..., min_length=1, max_length=20)

class InviteView(BaseModel):
    invite_id: int
    room_id: int
    room_name: str
    inviter_user_id: int
    inviter_name: str
    invitee_user_id: int
    state: InviteState
    created_at: datetime

class InviteCreatedResponse(Envelope):
    invite_id: int

class InviteListResponse(Envelope):
    invites: List[InviteView] = []
