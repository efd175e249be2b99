from datetime import datetime, timedelta, timezone

import pytest

from slotbook.core.timeslots import (
    TimeRange,
    generate_slots,
    interval_covers,
    intervals_overlap,
    is_aligned_to_slot_boundary,
    is_exact_slot,
    is_multiple_of_slot,
    round_down_to_slot_boundary,
    to_naive_utc,
)


def at(hour: int, minute: int = 0, second: int = 0, microsecond: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute, second, microsecond)


def test_round_down_to_slot_boundary_floors_minutes_and_zeroes_seconds() -> None:
    assert round_down_to_slot_boundary(at(10, 47, 13, 500)) == at(10, 30)
    assert round_down_to_slot_boundary(at(10, 29, 59, 999000)) == at(10, 0)
    assert round_down_to_slot_boundary(at(10, 30)) == at(10, 30)


def test_round_down_to_slot_boundary_honours_slot_size() -> None:
    assert round_down_to_slot_boundary(at(10, 47), slot_minutes=15) == at(10, 45)


def test_generate_slots_covers_window_with_contiguous_slots() -> None:
    slots = list(generate_slots(at(9, 0), at(11, 0)))

    assert slots == [
        TimeRange(at(9, 0), at(9, 30)),
        TimeRange(at(9, 30), at(10, 0)),
        TimeRange(at(10, 0), at(10, 30)),
        TimeRange(at(10, 30), at(11, 0)),
    ]
    for previous, current in zip(slots, slots[1:]):
        assert previous.end == current.start
    assert all(slot.end - slot.start == timedelta(minutes=30) for slot in slots)


def test_generate_slots_drops_trailing_partial_slot() -> None:
    slots = list(generate_slots(at(9, 0), at(10, 45)))

    assert len(slots) == 3
    assert slots[-1] == TimeRange(at(10, 0), at(10, 30))


def test_generate_slots_starts_at_rounded_down_boundary() -> None:
    slots = list(generate_slots(at(9, 10), at(10, 0)))

    assert slots == [
        TimeRange(at(9, 0), at(9, 30)),
        TimeRange(at(9, 30), at(10, 0)),
    ]


@pytest.mark.parametrize(
    ('start', 'end'),
    [
        (at(10, 0), at(10, 0)),
        (at(11, 0), at(10, 0)),
        (at(10, 0), at(10, 20)),
    ],
)
def test_generate_slots_is_empty_when_no_whole_slot_fits(start: datetime, end: datetime) -> None:
    slots = generate_slots(start, end)

    assert list(slots) == []
    assert len(slots) == 0


def test_generate_slots_can_be_iterated_more_than_once() -> None:
    slots = generate_slots(at(10, 0), at(11, 0))

    assert list(slots) == list(slots)
    assert len(slots) == 2


def test_generate_slots_for_shared_window_yields_two_slots() -> None:
    assert list(generate_slots(at(10, 0), at(11, 0))) == [
        TimeRange(at(10, 0), at(10, 30)),
        TimeRange(at(10, 30), at(11, 0)),
    ]


@pytest.mark.parametrize(
    ('first', 'second', 'expected'),
    [
        (TimeRange(at(9, 0), at(10, 0)), TimeRange(at(9, 30), at(10, 30)), True),
        (TimeRange(at(9, 0), at(10, 0)), TimeRange(at(10, 0), at(11, 0)), False),
        (TimeRange(at(9, 0), at(12, 0)), TimeRange(at(10, 0), at(10, 30)), True),
        (TimeRange(at(9, 0), at(9, 30)), TimeRange(at(11, 0), at(11, 30)), False),
    ],
)
def test_intervals_overlap_is_symmetric_half_open(first: TimeRange, second: TimeRange, expected: bool) -> None:
    assert intervals_overlap(first, second) is expected
    assert intervals_overlap(second, first) is expected


def test_interval_covers_requires_full_containment() -> None:
    slot = TimeRange(at(10, 0), at(10, 30))

    assert interval_covers(TimeRange(at(9, 45), at(11, 15)), slot)
    assert interval_covers(TimeRange(at(10, 0), at(10, 30)), slot)
    assert not interval_covers(TimeRange(at(10, 15), at(11, 0)), slot)


@pytest.mark.parametrize(
    ('minutes', 'expected'),
    [(30, True), (90, True), (45, False), (0, False), (-30, False)],
)
def test_is_multiple_of_slot(minutes: int, expected: bool) -> None:
    assert is_multiple_of_slot(at(9, 0), at(9, 0) + timedelta(minutes=minutes)) is expected


def test_is_exact_slot() -> None:
    assert is_exact_slot(at(9, 0), at(9, 30))
    assert not is_exact_slot(at(9, 0), at(10, 0))


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        (at(9, 0), True),
        (at(9, 30), True),
        (at(9, 15), False),
        (at(9, 0, 1), False),
        (at(9, 30, 0, 1000), False),
    ],
)
def test_is_aligned_to_slot_boundary(value: datetime, expected: bool) -> None:
    assert is_aligned_to_slot_boundary(value) is expected


def test_to_naive_utc_converts_aware_values() -> None:
    aware = datetime(2030, 1, 7, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    assert to_naive_utc(aware) == at(10, 0)
    assert to_naive_utc(at(10, 0)) == at(10, 0)
