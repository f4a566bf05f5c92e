from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from opd_backend.database import SessionLocal, ensure_scheduling_schema
from opd_backend.scheduling import errors

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

ERROR_STATUS_CODES = {
    errors.ValidationError: status.HTTP_400_BAD_REQUEST,
    errors.NotFoundError: status.HTTP_404_NOT_FOUND,
    errors.SlotUnavailableError: status.HTTP_409_CONFLICT,
    errors.DuplicateBookingError: status.HTTP_409_CONFLICT,
    errors.DuplicateScheduleError: status.HTTP_409_CONFLICT,
    errors.InvalidTransitionError: status.HTTP_409_CONFLICT,
    errors.StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_time() -> datetime:
    return datetime.now()


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def http_error(exc: errors.SchedulingError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, errors.DuplicateBookingError):
        conflicting = exc.conflicting
        return HTTPException(
            status_code=status_code,
            detail={
                'message': exc.message,
                'conflicting_appointment': {
                    'id': conflicting.id,
                    'doctor_id': conflicting.doctor_id,
                    'date': conflicting.date.isoformat(),
                    'slot_start': conflicting.slot_start.strftime('%H:%M'),
                    'status': conflicting.status,
                },
            },
        )

    return HTTPException(status_code=status_code, detail=exc.message)
