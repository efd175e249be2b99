"""Per-slot capacity over a time window.

Two queries per call no matter how many slots the window holds: every
candidate shift and every confirmed booking are fetched once and matched
against the slot grid in memory.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from slotbook.core import config
from slotbook.core.timeslots import TimeRange, generate_slots, interval_covers, round_down_to_slot_boundary
from slotbook.models.booking import BOOKING_STATUS_CONFIRMED, Booking
from slotbook.models.resource import Resource
from slotbook.models.shift import Shift
from slotbook.services.validation import TimeRangeInput, validate_schema


@dataclass(frozen=True)
class SlotAvailability:
    start: datetime
    end: datetime
    shift_count: int
    booking_count: int
    # Raw difference, negative when the data is over-booked.
    available_capacity: int
    is_available: bool


@dataclass(frozen=True)
class Availability:
    all_slots: list[SlotAvailability] = field(default_factory=list)
    available_slots: list[SlotAvailability] = field(default_factory=list)


def fetch_window_shifts(db: Session, start: datetime, end: datetime) -> list[TimeRange]:
    rows = db.query(Shift.start_time, Shift.end_time).join(
        Resource, Shift.resource_id == Resource.id,
    ).filter(
        Shift.deleted_at.is_(None),
        Shift.start_time < end,
        Shift.end_time > start,
        Resource.is_active.is_(True),
        Resource.deleted_at.is_(None),
    ).all()

    return [TimeRange(shift_start, shift_end) for shift_start, shift_end in rows]


def fetch_window_bookings(db: Session, start: datetime, end: datetime) -> list[TimeRange]:
    rows = db.query(Booking.start_time, Booking.end_time).join(
        Shift, Booking.shift_id == Shift.id,
    ).filter(
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
        Booking.start_time >= start,
        Booking.start_time < end,
        Shift.deleted_at.is_(None),
    ).all()

    return [TimeRange(booking_start, booking_end) for booking_start, booking_end in rows]


def compute_availability(
    db: Session,
    start: datetime,
    end: datetime,
    slot_minutes: int = config.SLOT_MINUTES,
) -> Availability:
    window = validate_schema(TimeRangeInput, {'start': start, 'end': end})
    start, end = window.start, window.end

    slots = generate_slots(start, end, slot_minutes)
    # The first slot may begin before ``start``; widen the fetch to the grid.
    window_start = round_down_to_slot_boundary(start, slot_minutes)

    shifts = fetch_window_shifts(db, window_start, end)
    bookings = fetch_window_bookings(db, window_start, end)

    booking_counts: dict[TimeRange, int] = {}
    for booking in bookings:
        booking_counts[booking] = booking_counts.get(booking, 0) + 1

    all_slots: list[SlotAvailability] = []
    for slot in slots:
        shift_count = sum(1 for shift in shifts if interval_covers(shift, slot))
        booking_count = booking_counts.get(slot, 0)
        available_capacity = shift_count - booking_count

        all_slots.append(
            SlotAvailability(
                start=slot.start,
                end=slot.end,
                shift_count=shift_count,
                booking_count=booking_count,
                available_capacity=available_capacity,
                is_available=available_capacity > 0,
            )
        )

    return Availability(
        all_slots=all_slots,
        available_slots=[slot for slot in all_slots if slot.is_available],
    )
