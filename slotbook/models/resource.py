"""Resource model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from slotbook.core.timeslots import utcnow
from slotbook.database import Base


class Resource(Base):
    """A bookable room, chair or station that shifts are scheduled on."""
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    quantity = Column(Integer, nullable=False, default=1)
    professionals_per_unit = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    @property
    def capacity(self) -> int:
        # Display figure only; matching still allows one client per shift per slot.
        return (self.quantity or 0) * (self.professionals_per_unit or 0)
