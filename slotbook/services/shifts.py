import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from slotbook.core import config
from slotbook.core.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    OperationFailedError,
    SchedulingError,
    ValidationError,
)
from slotbook.core.timeslots import is_multiple_of_slot, utcnow
from slotbook.database import transaction
from slotbook.models.booking import BOOKING_STATUS_CONFIRMED, Booking
from slotbook.models.resource import Resource
from slotbook.models.shift import Shift
from slotbook.models.user import ROLE_PROFESSIONAL, User
from slotbook.services.validation import (
    CreateShiftInput,
    find_overlapping_shifts,
    validate_professional_role,
    validate_resource_active,
    validate_schema,
    validate_slot_alignment,
)


logger = logging.getLogger(__name__)

SHIFT_HAS_BOOKINGS_MESSAGE = 'Cannot cancel shift with confirmed bookings'


def count_confirmed_bookings(db: Session, shift_id: int) -> int:
    return db.query(Booking.id).filter(
        Booking.shift_id == shift_id,
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
    ).count()


def _recheck_shift_constraints(db: Session, professional_id: int, resource_id: int, start: datetime, end: datetime) -> None:
    professional_role = db.query(User.role).filter(
        User.id == professional_id,
        User.deleted_at.is_(None),
    ).scalar()
    if professional_role != ROLE_PROFESSIONAL:
        raise BusinessRuleError('Professional not found or invalid role')

    resource_active = db.query(Resource.is_active).filter(
        Resource.id == resource_id,
        Resource.deleted_at.is_(None),
    ).scalar()
    if not resource_active:
        raise BusinessRuleError('Resource not found or inactive')

    overlapping = db.query(Shift.id).filter(
        Shift.deleted_at.is_(None),
        Shift.start_time < end,
        Shift.end_time > start,
        or_(
            Shift.professional_id == professional_id,
            Shift.resource_id == resource_id,
        ),
    ).first()
    if overlapping is not None:
        raise ConflictError('Overlapping shift detected')


def create_shift(db: Session, professional_id: int, resource_id: int, start: datetime, end: datetime) -> Shift:
    data = validate_schema(
        CreateShiftInput,
        {'professional_id': professional_id, 'resource_id': resource_id, 'start': start, 'end': end},
    )

    if not is_multiple_of_slot(data.start, data.end):
        raise ValidationError(
            f'Shift duration must be a multiple of {config.SLOT_MINUTES} minutes',
            {'start': data.start.isoformat(), 'end': data.end.isoformat()},
        )
    validate_slot_alignment(data.start, 'Shift')

    validate_professional_role(db, data.professional_id)
    validate_resource_active(db, data.resource_id)

    overlap = find_overlapping_shifts(db, data.professional_id, data.resource_id, data.start, data.end)
    if overlap.professional_overlap:
        raise ConflictError('Professional already has a shift during this time period')
    if overlap.resource_overlap:
        raise ConflictError('Resource already booked for this time period')

    try:
        with transaction(db):
            _recheck_shift_constraints(db, data.professional_id, data.resource_id, data.start, data.end)
            shift = Shift(
                professional_id=data.professional_id,
                resource_id=data.resource_id,
                start_time=data.start,
                end_time=data.end,
            )
            db.add(shift)
            db.flush()
    except SchedulingError:
        raise
    except Exception as exc:
        logger.exception('Failed to create shift for professional %s', data.professional_id)
        raise OperationFailedError('Failed to create shift') from exc

    logger.info(
        'Created shift %s for professional %s on resource %s (%s-%s)',
        shift.id, shift.professional_id, shift.resource_id, shift.start_time, shift.end_time,
    )
    return shift


def cancel_shift(db: Session, shift_id: int, requester_id: int) -> Shift:
    validate_professional_role(db, requester_id)

    shift = db.query(Shift).filter(
        Shift.id == shift_id,
        Shift.deleted_at.is_(None),
    ).first()

    if shift is None:
        raise NotFoundError('Shift not found')

    if shift.professional_id != requester_id:
        raise BusinessRuleError('Only the shift owner can cancel it')

    if count_confirmed_bookings(db, shift.id) > 0:
        raise BusinessRuleError(SHIFT_HAS_BOOKINGS_MESSAGE)

    with transaction(db):
        # A booking may have landed since the check above.
        if count_confirmed_bookings(db, shift.id) > 0:
            raise BusinessRuleError(SHIFT_HAS_BOOKINGS_MESSAGE)
        shift.deleted_at = utcnow()

    db.refresh(shift)
    logger.info('Cancelled shift %s for professional %s', shift.id, requester_id)
    return shift


def list_professional_shifts(
    db: Session,
    professional_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[tuple[Shift, list[Booking]]]:
    query = db.query(Shift).options(joinedload(Shift.resource)).filter(
        Shift.professional_id == professional_id,
        Shift.deleted_at.is_(None),
    )
    if start is not None:
        query = query.filter(Shift.start_time >= start)
    if end is not None:
        query = query.filter(Shift.end_time <= end)

    shifts = query.order_by(Shift.start_time.asc()).all()
    if not shifts:
        return []

    bookings = db.query(Booking).filter(
        Booking.shift_id.in_([shift.id for shift in shifts]),
        Booking.deleted_at.is_(None),
        Booking.status == BOOKING_STATUS_CONFIRMED,
    ).order_by(Booking.start_time.asc()).all()

    bookings_by_shift: dict[int, list[Booking]] = {shift.id: [] for shift in shifts}
    for booking in bookings:
        bookings_by_shift[booking.shift_id].append(booking)

    return [(shift, bookings_by_shift[shift.id]) for shift in shifts]


def list_active_resources(db: Session) -> list[Resource]:
    return db.query(Resource).filter(
        Resource.is_active.is_(True),
        Resource.deleted_at.is_(None),
    ).order_by(Resource.name.asc()).all()
