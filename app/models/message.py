from sqlalchemy import Column, ForeignKey, Integer, Text, DateTime

from .base import Base
from app.utils.clock import utcnow

class Message(Base):
    __tablename__ = "Message"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("Room.room_id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("User.user_id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Message(message_id={self.message_id}, sender_id={self.sender_id}, content='{self.content[:50]}...')>"
