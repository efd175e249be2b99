"""Booking model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from slotbook.core.timeslots import utcnow
from slotbook.database import Base
from slotbook.models.shift import Shift
from slotbook.models.user import User


BOOKING_STATUS_CONFIRMED = 'CONFIRMED'
BOOKING_STATUS_CANCELLED = 'CANCELLED'

_ACTIVE_SLOT_PREDICATE = text("status = 'CONFIRMED' AND deleted_at IS NULL")


class Booking(Base):
    """A client's seat on one slot of a shift."""
    __tablename__ = "bookings"
    __table_args__ = (
        # One active client per shift per slot.
        Index(
            'uq_bookings_active_slot',
            'shift_id',
            'start_time',
            'end_time',
            unique=True,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=BOOKING_STATUS_CONFIRMED)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    client = relationship(User)
    shift = relationship(Shift)
