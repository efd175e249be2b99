from datetime import datetime

from fastapi import HTTPException, status
from pydantic import BaseModel

from slotbook.core.errors import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from slotbook.core.timeslots import to_naive_utc

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

_STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    BusinessRuleError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class TimeRangeRequest(BaseModel):
    start_time: datetime
    end_time: datetime


def to_http_exception(exc: SchedulingError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail: dict = {'code': exc.code, 'message': exc.message}

    if isinstance(exc, ValidationError) and exc.details:
        detail['details'] = exc.details

    return HTTPException(status_code=status_code, detail=detail)


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def optional_utc(value: datetime | None) -> datetime | None:
    return to_naive_utc(value) if value is not None else None
