"""Shift model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from slotbook.core.timeslots import utcnow
from slotbook.database import Base
from slotbook.models.resource import Resource
from slotbook.models.user import User


class Shift(Base):
    """A professional's claim on a resource for a span of whole slots."""
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    resource_id = Column(Integer, ForeignKey("resources.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    professional = relationship(User)
    resource = relationship(Resource)
