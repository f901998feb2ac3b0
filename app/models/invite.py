from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey

from .base import Base
from app.schemas.invite import InviteState
from app.utils.clock import utcnow

class Invite(Base):
    __tablename__ = "Invite"

    invite_id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("Room.room_id"), nullable=False, index=True)
    inviter_user_id = Column(Integer, ForeignKey("User.user_id"), nullable=False)
    invitee_user_id = Column(Integer, ForeignKey("User.user_id"), nullable=False, index=True)
    state = Column(Enum(InviteState), nullable=False, default=InviteState.PENDING)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    responded_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Invite(invite_id={self.invite_id}, room_id={self.room_id}, state='{self.state}')>"
