import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from clinic.database import ensure_scheduling_indexes
from clinic.scheduling.errors import (
    DoctorUnavailable,
    InvalidInput,
    NotFound,
    PermissionDenied,
    ScheduleConflict,
    SchedulingError,
)

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'
DUPLICATE_SCHEDULE_DETAIL = 'Doctor has more than one active schedule for this weekday.'

_STATUS_BY_ERROR = {
    DoctorUnavailable: status.HTTP_400_BAD_REQUEST,
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    ScheduleConflict: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
}


def scheduling_http_error(exc: SchedulingError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    detail = exc.message
    if isinstance(exc, ScheduleConflict) and exc.start_time is not None:
        detail = f'{detail} Conflicts with {exc.start_time:%H:%M} - {exc.end_time:%H:%M}.'
    return HTTPException(status_code=status_code, detail=detail)


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_indexes()
    except SQLAlchemyError as exc:
        logger.exception('Could not prepare scheduling indexes.')
        raise database_unavailable() from exc
