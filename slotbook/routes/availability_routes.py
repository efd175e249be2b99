from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import CurrentUser, get_current_user
from slotbook.core.errors import SchedulingError
from slotbook.database import get_db
from slotbook.routes.common import database_unavailable, to_http_exception
from slotbook.services.availability import compute_availability

router = APIRouter(tags=['availability'])


class TimeslotResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    shift_count: int
    booking_count: int
    available_capacity: int
    is_available: bool


class TimeslotAvailabilityResponse(BaseModel):
    all_slots: list[TimeslotResponse]
    available_slots: list[TimeslotResponse]


def _to_response(slot) -> TimeslotResponse:
    return TimeslotResponse(
        start_time=slot.start,
        end_time=slot.end,
        shift_count=slot.shift_count,
        booking_count=slot.booking_count,
        available_capacity=slot.available_capacity,
        is_available=slot.is_available,
    )


@router.get('/timeslots', response_model=TimeslotAvailabilityResponse)
def list_timeslots(
    start: datetime = Query(...),
    end: datetime = Query(...),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user

    try:
        availability = compute_availability(db, start, end)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return TimeslotAvailabilityResponse(
        all_slots=[_to_response(slot) for slot in availability.all_slots],
        available_slots=[_to_response(slot) for slot in availability.available_slots],
    )
