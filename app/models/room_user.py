from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, Index, text

from .base import Base
from app.utils.clock import utcnow

class RoomUser(Base):
    __tablename__ = "RoomUser"
    __table_args__ = (
        Index(
            "uq_room_user_active",
            "room_id",
            "user_id",
            unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    room_user_id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("Room.room_id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("User.user_id"), nullable=False, index=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<RoomUser(room_user_id={self.room_user_id}, user_id={self.user_id}, room_id={self.room_id})>"
