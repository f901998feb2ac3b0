from sqlalchemy import Boolean, Column, DateTime, Integer
from sqlalchemy.ext.declarative import as_declarative

from app.utils.clock import utcnow

@as_declarative()
class Base:
    # Audit columns shared by every table. Writes go through the gateway,
    # which stamps updated_by/updated_at from the acting user.
    is_deleted = Column(Boolean, nullable=False, default=False)
    updated_by = Column(Integer, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
