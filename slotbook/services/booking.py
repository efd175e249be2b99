"""Auto-matching booking engine and booking lifecycle.

A client asks for one slot; the engine picks a shift that still has room
for that slot and books it. Every attempt runs inside one transaction:

    candidate search -> capacity filter -> random pick -> recount -> insert

The recount and the insert commit together, so a booking is never written
against a stale count. When the recount shows a concurrent writer already
took the seat, the attempt is rolled back and retried from the candidate
search after a short jittered pause.
"""

import logging
import random
import time
from datetime import datetime
from typing import Callable

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from slotbook.core import config
from slotbook.core.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    OperationFailedError,
    ValidationError,
)
from slotbook.core.timeslots import utcnow
from slotbook.database import transaction
from slotbook.models.booking import BOOKING_STATUS_CANCELLED, BOOKING_STATUS_CONFIRMED, Booking
from slotbook.models.resource import Resource
from slotbook.models.shift import Shift
from slotbook.services.validation import (
    CreateBookingInput,
    validate_client_role,
    validate_exact_slot_duration,
    validate_schema,
    validate_slot_alignment,
)


logger = logging.getLogger(__name__)

# One client per shift per slot. Resource quantity is not consulted.
SHIFT_SLOT_CAPACITY = 1

NO_CAPACITY_MESSAGE = 'No available professionals for the requested timeslot'
BOOKING_FAILED_MESSAGE = 'Failed to create booking. Please try again.'


def find_candidate_shifts(db: Session, start: datetime, end: datetime) -> list[tuple[Shift, int]]:
    """Shifts covering ``[start, end)`` paired with their confirmed bookings for exactly that slot."""
    slot_bookings = and_(
        Booking.shift_id == Shift.id,
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
        Booking.start_time == start,
        Booking.end_time == end,
    )

    rows = db.query(Shift, func.count(Booking.id)).join(
        Resource, Shift.resource_id == Resource.id,
    ).outerjoin(
        Booking, slot_bookings,
    ).filter(
        Shift.deleted_at.is_(None),
        Shift.start_time <= start,
        Shift.end_time >= end,
        Resource.is_active.is_(True),
        Resource.deleted_at.is_(None),
    ).group_by(Shift.id).order_by(Shift.id).all()

    return [(shift, booked) for shift, booked in rows]


def count_slot_bookings(db: Session, shift_id: int, start: datetime, end: datetime) -> int:
    return db.query(func.count(Booking.id)).filter(
        Booking.shift_id == shift_id,
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
        Booking.start_time == start,
        Booking.end_time == end,
    ).scalar() or 0


def _book_once(db: Session, client_id: int, start: datetime, end: datetime, rng) -> Booking:
    candidates = find_candidate_shifts(db, start, end)
    open_shifts = [shift for shift, booked in candidates if booked < SHIFT_SLOT_CAPACITY]

    if not open_shifts:
        raise BusinessRuleError(NO_CAPACITY_MESSAGE)

    selected = rng.choice(open_shifts)

    if count_slot_bookings(db, selected.id, start, end) >= SHIFT_SLOT_CAPACITY:
        raise ConflictError('Capacity taken by concurrent booking')

    booking = Booking(
        client_id=client_id,
        shift_id=selected.id,
        start_time=start,
        end_time=end,
        status=BOOKING_STATUS_CONFIRMED,
    )
    db.add(booking)
    db.flush()
    return booking


def auto_book(
    db: Session,
    client_id: int,
    start: datetime,
    end: datetime,
    *,
    rng: random.Random | None = None,
    sleep: Callable[[float], None] = time.sleep,
    max_attempts: int | None = None,
) -> Booking:
    """Book one slot for ``client_id`` on any shift that still has room.

    ``rng`` and ``sleep`` are seams for deterministic tests. Validation,
    not-found and business-rule failures surface immediately; conflicts are
    retried up to ``max_attempts`` (``config.BOOKING_MAX_ATTEMPTS``) and
    then reported as ``OperationFailedError``.
    """
    data = validate_schema(CreateBookingInput, {'client_id': client_id, 'start': start, 'end': end})
    validate_exact_slot_duration(data.start, data.end)
    validate_slot_alignment(data.start, 'Booking')
    validate_client_role(db, data.client_id)

    rng = rng or random.Random()
    attempts = max_attempts or config.BOOKING_MAX_ATTEMPTS
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            with transaction(db):
                booking = _book_once(db, data.client_id, data.start, data.end, rng)
        except (ConflictError, IntegrityError) as exc:
            last_error = exc
            if attempt < attempts:
                delay = rng.uniform(0, config.BOOKING_RETRY_MAX_DELAY_MS) / 1000
                logger.warning(
                    'Booking conflict for client %s at %s (attempt %d/%d); retrying in %.3fs',
                    data.client_id, data.start, attempt, attempts, delay,
                )
                sleep(delay)
                continue
            break
        except (ValidationError, NotFoundError, BusinessRuleError):
            raise
        except Exception as exc:
            last_error = exc
            break
        else:
            logger.info(
                'Booked client %s on shift %s for %s-%s (attempt %d)',
                booking.client_id, booking.shift_id, booking.start_time, booking.end_time, attempt,
            )
            return booking

    logger.error('Failed to create booking after %d attempt(s)', attempts, exc_info=last_error)
    raise OperationFailedError(BOOKING_FAILED_MESSAGE) from last_error


def cancel_booking(db: Session, booking_id: int, requester_id: int, now: datetime | None = None) -> Booking:
    validate_client_role(db, requester_id)

    booking = db.query(Booking).filter(Booking.id == booking_id).first()

    if booking is None:
        raise NotFoundError(f'Booking {booking_id} not found')

    if booking.client_id != requester_id:
        raise BusinessRuleError('You can only cancel your own bookings')

    if booking.deleted_at is not None or booking.status == BOOKING_STATUS_CANCELLED:
        raise BusinessRuleError('Booking is already cancelled')

    now = now or utcnow()
    if booking.start_time < now:
        raise BusinessRuleError('Cannot cancel past bookings')

    with transaction(db):
        booking.deleted_at = now
        booking.status = BOOKING_STATUS_CANCELLED

    db.refresh(booking)
    logger.info('Cancelled booking %s for client %s', booking.id, requester_id)
    return booking


def _bookings_in_range(query, start: datetime | None, end: datetime | None):
    if start is not None:
        query = query.filter(Booking.start_time >= start)
    if end is not None:
        query = query.filter(Booking.start_time <= end)
    return query.order_by(Booking.start_time.asc())


def list_client_bookings(
    db: Session,
    client_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Booking]:
    query = db.query(Booking).options(
        joinedload(Booking.shift).joinedload(Shift.resource),
        joinedload(Booking.shift).joinedload(Shift.professional),
    ).filter(
        Booking.client_id == client_id,
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
    )
    return _bookings_in_range(query, start, end).all()


def list_professional_bookings(
    db: Session,
    professional_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Booking]:
    query = db.query(Booking).join(
        Shift, Booking.shift_id == Shift.id,
    ).options(
        joinedload(Booking.client),
        joinedload(Booking.shift).joinedload(Shift.resource),
    ).filter(
        Shift.professional_id == professional_id,
        Shift.deleted_at.is_(None),
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
    )
    return _bookings_in_range(query, start, end).all()
