from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.core import config
from opd_backend.models.status import APPOINTMENT_STATUSES
from opd_backend.routes.common import (
    current_time,
    database_unavailable,
    ensure_database_ready,
    get_db,
    http_error,
)
from opd_backend.scheduling.availability import AvailabilityResolver
from opd_backend.scheduling.booking import BookingCoordinator
from opd_backend.scheduling.errors import SchedulingError
from opd_backend.scheduling.followups import FollowUpAdapter
from opd_backend.scheduling.ledger import BookingLedger

router = APIRouter(tags=['appointments'])


def _clean_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class SlotResponse(BaseModel):
    start: str
    end: str
    status: str


class DoctorSlotsResponse(BaseModel):
    doctor_id: int
    date: date
    slots: list[SlotResponse]


class CreateAppointmentRequest(BaseModel):
    patient_id: int
    doctor_id: int
    department_id: int | None = None
    date: date
    slot_start: time
    purpose: str | None = None
    booked_by: str | None = None

    @field_validator('purpose')
    @classmethod
    def validate_purpose(cls, value: str | None) -> str | None:
        normalized = _clean_optional_text(value)
        if normalized and len(normalized) > config.MAX_PURPOSE_LENGTH:
            raise ValueError(f'Purpose must be {config.MAX_PURPOSE_LENGTH} characters or fewer.')
        return normalized

    @field_validator('booked_by')
    @classmethod
    def validate_booked_by(cls, value: str | None) -> str | None:
        return _clean_optional_text(value)


class UpdateStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized


class RescheduleRequest(BaseModel):
    date: date
    slot_start: time
    booked_by: str | None = None

    @field_validator('booked_by')
    @classmethod
    def validate_booked_by(cls, value: str | None) -> str | None:
        return _clean_optional_text(value)


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    department_id: int | None = None
    date: date
    slot_start: time
    slot_end: time
    status: str
    purpose: str | None = None
    booked_by: str | None = None
    rescheduled_from_id: int | None = None
    created_at: datetime

    class Config:
        from_attributes = True


@router.get('/slots', response_model=DoctorSlotsResponse)
def list_doctor_slots(
    doctor_id: int = Query(...),
    date: date = Query(...),
    now: datetime = Depends(current_time),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = AvailabilityResolver(db).get_availability(doctor_id, date, now)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return DoctorSlotsResponse(
        doctor_id=doctor_id,
        date=date,
        slots=[
            SlotResponse(
                start=item.slot.start.strftime('%H:%M'),
                end=item.slot.end.strftime('%H:%M'),
                status=item.state,
            )
            for item in availability
        ],
    )


@router.get('/slots/free', response_model=list[str])
def list_free_slots(
    doctor_id: int = Query(...),
    date: date = Query(...),
    now: datetime = Depends(current_time),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return [slot.label() for slot in AvailabilityResolver(db).free_slots(doctor_id, date, now)]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_appointments(
    date: date | None = Query(default=None),
    doctor_id: int | None = Query(default=None),
    patient_id: int | None = Query(default=None),
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    normalized_status = status.strip().lower() if status else None

    try:
        return BookingLedger(db).list_appointments(
            on_date=date,
            doctor_id=doctor_id,
            patient_id=patient_id,
            status=normalized_status,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/appointments/noshow', response_model=list[AppointmentResponse])
def list_no_show_appointments(
    date: date | None = Query(default=None),
    doctor_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return BookingLedger(db).list_no_shows(on_date=date, doctor_id=doctor_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    now: datetime = Depends(current_time),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return BookingCoordinator(db).create_booking(
            patient_id=data.patient_id,
            doctor_id=data.doctor_id,
            department_id=data.department_id,
            booking_date=data.date,
            slot_start=data.slot_start,
            purpose=data.purpose,
            booked_by=data.booked_by,
            now=now,
        )
    except SchedulingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(appointment_id: int, data: UpdateStatusRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return BookingCoordinator(db).transition_status(appointment_id, data.status)
    except SchedulingError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post(
    '/appointments/{appointment_id}/reschedule',
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def reschedule_no_show(
    appointment_id: int,
    data: RescheduleRequest,
    now: datetime = Depends(current_time),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return FollowUpAdapter(db).reschedule_from_no_show(
            appointment_id,
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
