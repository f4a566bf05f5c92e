from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.models.status import FOLLOWUP_STATUSES
from opd_backend.routes.appointment_routes import AppointmentResponse
from opd_backend.routes.common import (
    current_time,
    database_unavailable,
    ensure_database_ready,
    get_db,
    http_error,
)
from opd_backend.scheduling.errors import SchedulingError
from opd_backend.scheduling.followups import FollowUpAdapter

router = APIRouter(tags=['followups'])


class CreateFollowUpRequest(BaseModel):
    patient_id: int
    doctor_id: int
    department_id: int | None = None
    due_date: date
    note: str | None = None


class UpdateFollowUpRequest(BaseModel):
    due_date: date | None = None
    note: str | None = None
    status: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in FOLLOWUP_STATUSES:
            raise ValueError('Invalid follow-up status.')
        return normalized


class ScheduleFollowUpRequest(BaseModel):
    date: date
    slot_start: time
    booked_by: str | None = None


class FollowUpResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    department_id: int | None = None
    due_date: date
    note: str | None = None
    status: str
    appointment_id: int | None = None

    class Config:
        from_attributes = True


class ScheduledFollowUpResponse(BaseModel):
    followup: FollowUpResponse
    appointment: AppointmentResponse


@router.post('/followups', response_model=FollowUpResponse, status_code=status.HTTP_201_CREATED)
def create_followup(data: CreateFollowUpRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return FollowUpAdapter(db).create_followup(
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            due_date=data.due_date,
            note=data.note,
            department_id=data.department_id,
        )
    except SchedulingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/followups', response_model=list[FollowUpResponse])
def list_followups(
    status: str | None = Query(default=None),
    doctor_id: int | None = Query(default=None),
    patient_id: int | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return FollowUpAdapter(db).list_followups(
            status=status.strip().lower() if status else None,
            doctor_id=doctor_id,
            patient_id=patient_id,
            date_from=date_from,
            date_to=date_to,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/followups/{followup_id}', response_model=FollowUpResponse)
def update_followup(followup_id: int, data: UpdateFollowUpRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field == 'note'
    }

    try:
        return FollowUpAdapter(db).update_followup(followup_id, **changes)
    except SchedulingError as exc:
        db.rollback()
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/followups/{followup_id}/schedule', response_model=ScheduledFollowUpResponse)
def schedule_followup(
    followup_id: int,
    data: ScheduleFollowUpRequest,
    now: datetime = Depends(current_time),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        followup, appointment = FollowUpAdapter(db).schedule_followup(
            followup_id,
            booking_date=data.date,
            slot_start=data.slot_start,
            booked_by=data.booked_by,
            now=now,
        )
    except SchedulingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return ScheduledFollowUpResponse(
        followup=FollowUpResponse.model_validate(followup),
        appointment=AppointmentResponse.model_validate(appointment),
    )
