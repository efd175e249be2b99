"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String

from slotbook.core.timeslots import utcnow
from slotbook.database import Base


ROLE_ADMIN = 'ADMIN'
ROLE_PROFESSIONAL = 'PROFESSIONAL'
ROLE_CLIENT = 'CLIENT'


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True)
    role = Column(String, nullable=False, default=ROLE_CLIENT)  # ADMIN/PROFESSIONAL/CLIENT
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)
