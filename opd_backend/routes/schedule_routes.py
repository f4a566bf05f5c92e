from datetime import time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.routes.common import database_unavailable, ensure_database_ready, get_db, http_error
from opd_backend.scheduling.errors import SchedulingError
from opd_backend.scheduling.schedule_store import ScheduleStore

router = APIRouter(tags=['schedules'])

MAX_LOCATION_LENGTH = 120


def _clean_location(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > MAX_LOCATION_LENGTH:
        raise ValueError(f'Location must be {MAX_LOCATION_LENGTH} characters or fewer.')
    return normalized


class CreateScheduleRequest(BaseModel):
    doctor_id: int
    weekday: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    slot_minutes: int | None = Field(default=None, gt=0)
    location: str | None = None
    is_active: bool = True

    @field_validator('end_time')
    @classmethod
    def validate_end_time(cls, value: time, info: ValidationInfo) -> time:
        start_time = info.data.get('start_time')
        if start_time is not None and value <= start_time:
            raise ValueError('End time must be after start time.')
        return value

    @field_validator('location')
    @classmethod
    def validate_location(cls, value: str | None) -> str | None:
        return _clean_location(value)


class UpdateScheduleRequest(BaseModel):
    weekday: int | None = Field(default=None, ge=0, le=6)
    start_time: time | None = None
    end_time: time | None = None
    slot_minutes: int | None = Field(default=None, gt=0)
    location: str | None = None
    is_active: bool | None = None

    @field_validator('location')
    @classmethod
    def validate_location(cls, value: str | None) -> str | None:
        return _clean_location(value)


class ScheduleResponse(BaseModel):
    id: int
    doctor_id: int
    weekday: int
    start_time: time
    end_time: time
    slot_minutes: int
    location: str | None = None
    is_active: bool

    class Config:
        from_attributes = True


class DoctorWeekdaysResponse(BaseModel):
    doctor_id: int
    weekdays: list[int]


@router.get('/schedules', response_model=list[ScheduleResponse])
def list_schedules(doctor_id: int = Query(...), db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return ScheduleStore(db).list_for_doctor(doctor_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/doctor-weekdays', response_model=DoctorWeekdaysResponse)
def list_doctor_weekdays(doctor_id: int = Query(...), db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        weekdays = ScheduleStore(db).list_weekdays(doctor_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return DoctorWeekdaysResponse(doctor_id=doctor_id, weekdays=weekdays)


@router.post('/schedules', response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(data: CreateScheduleRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return ScheduleStore(db).create(
            doctor_id=data.doctor_id,
            weekday=data.weekday,
            start_time=data.start_time,
            end_time=data.end_time,
            slot_minutes=data.slot_minutes,
            location=data.location,
            is_active=data.is_active,
        )
    except SchedulingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/schedules/{schedule_id}', response_model=ScheduleResponse)
def update_schedule(schedule_id: int, data: UpdateScheduleRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field == 'location'
    }

    try:
        return ScheduleStore(db).update(schedule_id, **changes)
    except SchedulingError as exc:
        db.rollback()
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/schedules/{schedule_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(schedule_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        ScheduleStore(db).delete(schedule_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
