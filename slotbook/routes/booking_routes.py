from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import CurrentUser, require_role
from slotbook.core.errors import SchedulingError
from slotbook.database import get_db
from slotbook.models.booking import Booking
from slotbook.models.user import ROLE_CLIENT, ROLE_PROFESSIONAL
from slotbook.routes.common import TimeRangeRequest, database_unavailable, optional_utc, to_http_exception
from slotbook.services.booking import (
    auto_book,
    cancel_booking,
    list_client_bookings,
    list_professional_bookings,
)

router = APIRouter(tags=['bookings'])


class CreateBookingRequest(TimeRangeRequest):
    pass


class BookingResponse(BaseModel):
    id: int
    client_id: int
    shift_id: int
    start_time: datetime
    end_time: datetime
    status: str
    deleted_at: datetime | None = None

    class Config:
        from_attributes = True


class BookingDetailResponse(BookingResponse):
    professional_id: int
    resource_id: int
    resource_name: str


def _to_detail(booking: Booking) -> BookingDetailResponse:
    return BookingDetailResponse(
        id=booking.id,
        client_id=booking.client_id,
        shift_id=booking.shift_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
        status=booking.status,
        deleted_at=booking.deleted_at,
        professional_id=booking.shift.professional_id,
        resource_id=booking.shift.resource_id,
        resource_name=booking.shift.resource.name,
    )


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    current_user: CurrentUser = Depends(require_role(ROLE_CLIENT)),
    db: Session = Depends(get_db),
):
    try:
        return auto_book(db, current_user.id, data.start_time, data.end_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/me', response_model=list[BookingDetailResponse])
def list_my_bookings(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    current_user: CurrentUser = Depends(require_role(ROLE_CLIENT)),
    db: Session = Depends(get_db),
):
    try:
        bookings = list_client_bookings(db, current_user.id, optional_utc(start), optional_utc(end))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [_to_detail(booking) for booking in bookings]


@router.get('/professional', response_model=list[BookingDetailResponse])
def list_bookings_on_my_shifts(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    current_user: CurrentUser = Depends(require_role(ROLE_PROFESSIONAL)),
    db: Session = Depends(get_db),
):
    try:
        bookings = list_professional_bookings(db, current_user.id, optional_utc(start), optional_utc(end))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [_to_detail(booking) for booking in bookings]


@router.delete('/{booking_id}', response_model=BookingResponse)
def cancel_my_booking(
    booking_id: int,
    current_user: CurrentUser = Depends(require_role(ROLE_CLIENT)),
    db: Session = Depends(get_db),
):
    try:
        return cancel_booking(db, booking_id, current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
