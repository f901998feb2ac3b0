from sqlalchemy import Column, Integer, String, DateTime

from app.models.base import Base
from app.utils.clock import utcnow

class User(Base):
    __tablename__ = "User"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(String(20), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    image_url = Column(String(512), nullable=True)
    username = Column(String(50), unique=True, nullable=True)
    hashed_password = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User(user_id={self.user_id}, device_id='{self.device_id}')>"
