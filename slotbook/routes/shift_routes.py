from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import CurrentUser, require_role
from slotbook.core.errors import SchedulingError
from slotbook.database import get_db
from slotbook.models.user import ROLE_ADMIN, ROLE_PROFESSIONAL
from slotbook.routes.common import TimeRangeRequest, database_unavailable, optional_utc, to_http_exception
from slotbook.services.shifts import cancel_shift, create_shift, list_active_resources, list_professional_shifts

router = APIRouter(tags=['shifts'])


class CreateShiftRequest(TimeRangeRequest):
    resource_id: int


class ShiftResponse(BaseModel):
    id: int
    professional_id: int
    resource_id: int
    start_time: datetime
    end_time: datetime
    deleted_at: datetime | None = None

    class Config:
        from_attributes = True


class ShiftBookingResponse(BaseModel):
    id: int
    client_id: int
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True


class ShiftDetailResponse(ShiftResponse):
    resource_name: str
    bookings: list[ShiftBookingResponse]


class ResourceResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    is_active: bool
    quantity: int
    professionals_per_unit: int
    capacity: int

    class Config:
        from_attributes = True


@router.post('', response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
def create_my_shift(
    data: CreateShiftRequest,
    current_user: CurrentUser = Depends(require_role(ROLE_PROFESSIONAL)),
    db: Session = Depends(get_db),
):
    try:
        return create_shift(db, current_user.id, data.resource_id, data.start_time, data.end_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/me', response_model=list[ShiftDetailResponse])
def list_my_shifts(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    current_user: CurrentUser = Depends(require_role(ROLE_PROFESSIONAL)),
    db: Session = Depends(get_db),
):
    try:
        shifts = list_professional_shifts(db, current_user.id, optional_utc(start), optional_utc(end))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [
        ShiftDetailResponse(
            id=shift.id,
            professional_id=shift.professional_id,
            resource_id=shift.resource_id,
            start_time=shift.start_time,
            end_time=shift.end_time,
            deleted_at=shift.deleted_at,
            resource_name=shift.resource.name,
            bookings=[ShiftBookingResponse.model_validate(booking) for booking in bookings],
        )
        for shift, bookings in shifts
    ]


@router.get('/resources', response_model=list[ResourceResponse])
def list_resources(
    current_user: CurrentUser = Depends(require_role(ROLE_PROFESSIONAL, ROLE_ADMIN)),
    db: Session = Depends(get_db),
):
    del current_user

    try:
        return list_active_resources(db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/{shift_id}', response_model=ShiftResponse)
def cancel_my_shift(
    shift_id: int,
    current_user: CurrentUser = Depends(require_role(ROLE_PROFESSIONAL)),
    db: Session = Depends(get_db),
):
    try:
        return cancel_shift(db, shift_id, current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
