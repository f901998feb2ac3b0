from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from .base import Base

class Token(Base):
    __tablename__ = "Token"

    token_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("User.user_id"), nullable=False, index=True)
    # One active pair per device; re-login rewrites this row.
    device_id = Column(String(20), unique=True, nullable=False)
    device_name = Column(String(100), nullable=True)
    access_jti = Column(String(32), nullable=False)
    refresh_token_hash = Column(String(64), nullable=False, unique=True)
    access_expires_at = Column(DateTime, nullable=False)
    refresh_expires_at = Column(DateTime, nullable=False)
