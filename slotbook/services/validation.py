from datetime import datetime
from typing import Any, NamedTuple, TypeVar

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from slotbook.core import config
from slotbook.core.errors import BusinessRuleError, NotFoundError, ValidationError
from slotbook.core.timeslots import is_aligned_to_slot_boundary, is_exact_slot, to_naive_utc
from slotbook.models.resource import Resource
from slotbook.models.shift import Shift
from slotbook.models.user import ROLE_CLIENT, ROLE_PROFESSIONAL, User


SchemaT = TypeVar('SchemaT', bound=BaseModel)


class TimeRangeInput(BaseModel):
    start: datetime
    end: datetime

    @field_validator('start', 'end')
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator('end')
    @classmethod
    def validate_end_after_start(cls, value: datetime, info: ValidationInfo) -> datetime:
        start = info.data.get('start')
        if start is not None and start >= value:
            raise ValueError('Start time must be before end time')
        return value


class CreateShiftInput(TimeRangeInput):
    professional_id: int = Field(gt=0)
    resource_id: int = Field(gt=0)


class CreateBookingInput(TimeRangeInput):
    client_id: int = Field(gt=0)


class ShiftOverlap(NamedTuple):
    professional_overlap: bool
    resource_overlap: bool


def validate_schema(schema: type[SchemaT], data: dict[str, Any]) -> SchemaT:
    """Parse ``data`` with ``schema``, folding every failure into one ValidationError."""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        details: dict[str, str] = {}
        for error in exc.errors():
            path = '.'.join(str(part) for part in error['loc']) or '__root__'
            details.setdefault(path, error['msg'])
        raise ValidationError('Validation failed', details) from exc


def validate_user_role(db: Session, user_id: int, role: str, action: str) -> None:
    user_role = db.query(User.role).filter(
        User.id == user_id,
        User.deleted_at.is_(None),
    ).scalar()

    if user_role is None:
        raise NotFoundError(f'User {user_id} not found')

    if user_role != role:
        raise BusinessRuleError(f'User {user_id} must have role {role} to {action}')


def validate_professional_role(db: Session, user_id: int) -> None:
    validate_user_role(db, user_id, ROLE_PROFESSIONAL, 'manage shifts')


def validate_client_role(db: Session, user_id: int) -> None:
    validate_user_role(db, user_id, ROLE_CLIENT, 'manage bookings')


def validate_resource_active(db: Session, resource_id: int) -> None:
    resource = db.query(Resource.is_active, Resource.deleted_at).filter(
        Resource.id == resource_id,
    ).first()

    if resource is None:
        raise NotFoundError(f'Resource {resource_id} not found')

    is_active, deleted_at = resource
    if not is_active or deleted_at is not None:
        raise BusinessRuleError(f'Resource {resource_id} is not available for shifts')


def validate_exact_slot_duration(start: datetime, end: datetime, slot_minutes: int = config.SLOT_MINUTES) -> None:
    if not is_exact_slot(start, end, slot_minutes):
        duration_minutes = (end - start).total_seconds() / 60
        raise ValidationError(
            f'Booking must be exactly {slot_minutes} minutes',
            {
                'start': start.isoformat(),
                'end': end.isoformat(),
                'duration': f'{duration_minutes:g} minutes',
            },
        )


def validate_slot_alignment(value: datetime, subject: str, slot_minutes: int = config.SLOT_MINUTES) -> None:
    if not is_aligned_to_slot_boundary(value, slot_minutes):
        raise ValidationError(
            f'{subject} start time must be aligned to {slot_minutes}-minute boundaries',
            {'start': value.isoformat()},
        )


def find_overlapping_shifts(
    db: Session,
    professional_id: int,
    resource_id: int,
    start: datetime,
    end: datetime,
) -> ShiftOverlap:
    overlapping = db.query(Shift.professional_id, Shift.resource_id).filter(
        Shift.deleted_at.is_(None),
        Shift.start_time < end,
        Shift.end_time > start,
        or_(
            Shift.professional_id == professional_id,
            Shift.resource_id == resource_id,
        ),
    ).all()

    return ShiftOverlap(
        professional_overlap=any(row.professional_id == professional_id for row in overlapping),
        resource_overlap=any(row.resource_id == resource_id for row in overlapping),
    )
