"""Interval math for fixed-size timeslots.

All intervals are half-open ``[start, end)``. Datetimes are naive UTC.
The overlap filters in the service queries (``start < other_end and
end > other_start``) are the SQL form of ``intervals_overlap``.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterator, NamedTuple

from slotbook.core import config


class TimeRange(NamedTuple):
    start: datetime
    end: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def round_down_to_slot_boundary(value: datetime, slot_minutes: int = config.SLOT_MINUTES) -> datetime:
    return value.replace(
        minute=value.minute - (value.minute % slot_minutes),
        second=0,
        microsecond=0,
    )


class SlotRange:
    """Contiguous whole slots between two instants.

    Iterating yields ``TimeRange`` pairs of exactly ``slot_minutes`` starting
    at the slot boundary at or before ``start``. A trailing interval shorter
    than one slot is dropped. Each call to ``iter()`` starts over.
    """

    def __init__(self, start: datetime, end: datetime, slot_minutes: int = config.SLOT_MINUTES):
        self.start = start
        self.end = end
        self.slot_minutes = slot_minutes

    def __iter__(self) -> Iterator[TimeRange]:
        if self.start >= self.end:
            return

        step = timedelta(minutes=self.slot_minutes)
        current = round_down_to_slot_boundary(self.start, self.slot_minutes)

        while current + step <= self.end:
            yield TimeRange(current, current + step)
            current += step

    def __len__(self) -> int:
        if self.start >= self.end:
            return 0
        first = round_down_to_slot_boundary(self.start, self.slot_minutes)
        return (self.end - first) // timedelta(minutes=self.slot_minutes)

    def __repr__(self) -> str:
        return f'SlotRange({self.start!r}, {self.end!r}, slot_minutes={self.slot_minutes})'


def generate_slots(start: datetime, end: datetime, slot_minutes: int = config.SLOT_MINUTES) -> SlotRange:
    return SlotRange(start, end, slot_minutes)


def intervals_overlap(a: TimeRange, b: TimeRange) -> bool:
    # Touching endpoints do not overlap.
    return a.start < b.end and b.start < a.end


def interval_covers(outer: TimeRange, inner: TimeRange) -> bool:
    return outer.start <= inner.start and outer.end >= inner.end


def is_multiple_of_slot(start: datetime, end: datetime, slot_minutes: int = config.SLOT_MINUTES) -> bool:
    duration = end - start
    return duration > timedelta(0) and duration % timedelta(minutes=slot_minutes) == timedelta(0)


def is_exact_slot(start: datetime, end: datetime, slot_minutes: int = config.SLOT_MINUTES) -> bool:
    return end - start == timedelta(minutes=slot_minutes)


def is_aligned_to_slot_boundary(value: datetime, slot_minutes: int = config.SLOT_MINUTES) -> bool:
    return value.minute % slot_minutes == 0 and value.second == 0 and value.microsecond == 0
