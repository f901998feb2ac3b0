from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from app.models.base import Base
from app.utils.clock import utcnow

class Room(Base):
    __tablename__ = "Room"

    room_id = Column(Integer, primary_key=True, autoincrement=True)
    room_name = Column(String(100), nullable=False)
    creator_id = Column(Integer, ForeignKey("User.user_id"), nullable=False)
    # bcrypt digest; NULL means the room is open
    password_hash = Column(String(255), nullable=True)
    image_url = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Room(room_id={self.room_id}, room_name='{self.room_name}')>"
