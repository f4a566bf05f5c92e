import logging
from datetime import date, datetime, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.core import config
from opd_backend.models.appointment import Appointment
from opd_backend.models.followup import FollowUp
from opd_backend.models.status import (
    FOLLOWUP_CANCELLED,
    FOLLOWUP_COMPLETED,
    FOLLOWUP_SCHEDULED,
    FOLLOWUP_STATUSES,
    FOLLOWUP_WAITING,
    NO_SHOW,
)
from opd_backend.scheduling.booking import STORE_UNAVAILABLE_MESSAGE, BookingCoordinator
from opd_backend.scheduling.errors import InvalidTransitionError, NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

FOLLOWUP_EDITABLE_FIELDS = ('due_date', 'note', 'status')

# Manual moves only; waiting -> scheduled happens through schedule_followup.
FOLLOWUP_MANUAL_TRANSITIONS = {
    FOLLOWUP_WAITING: frozenset({FOLLOWUP_CANCELLED}),
    FOLLOWUP_SCHEDULED: frozenset({FOLLOWUP_COMPLETED}),
    FOLLOWUP_COMPLETED: frozenset(),
    FOLLOWUP_CANCELLED: frozenset(),
}


def _clean_note(note: str | None) -> str | None:
    if note is None:
        return None
    note = note.strip()
    if not note:
        return None
    if len(note) > config.MAX_FOLLOWUP_NOTE_LENGTH:
        raise ValidationError(f'Note must be {config.MAX_FOLLOWUP_NOTE_LENGTH} characters or fewer.')
    return note


def _followup_purpose(note: str | None) -> str:
    # Notes may be longer than an appointment purpose allows.
    if not note:
        return 'Follow-up'
    return note[:config.MAX_PURPOSE_LENGTH].rstrip()


class FollowUpAdapter:
    """Turns follow-ups and no-shows into new appointments.

    Bookings are delegated to the coordinator; existing appointments are
    never rewritten, a reschedule always creates a new row.
    """

    def __init__(self, db: Session, coordinator: BookingCoordinator | None = None):
        self.db = db
        self.coordinator = coordinator or BookingCoordinator(db)

    def get(self, followup_id: int) -> FollowUp:
        followup = self.db.get(FollowUp, followup_id)
        if followup is None:
            raise NotFoundError('Follow-up not found.')
        return followup

    def create_followup(
        self,
        patient_id: int,
        doctor_id: int,
        due_date: date,
        note: str | None = None,
        department_id: int | None = None,
    ) -> FollowUp:
        followup = FollowUp(
            patient_id=patient_id,
            doctor_id=doctor_id,
            department_id=department_id,
            due_date=due_date,
            note=_clean_note(note),
            status=FOLLOWUP_WAITING,
        )
        self.db.add(followup)
        self._commit()
        self.db.refresh(followup)
        return followup

    def list_followups(
        self,
        status: str | None = None,
        doctor_id: int | None = None,
        patient_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[FollowUp]:
        query = self.db.query(FollowUp)
        if status is not None:
            query = query.filter(FollowUp.status == status)
        if doctor_id is not None:
            query = query.filter(FollowUp.doctor_id == doctor_id)
        if patient_id is not None:
            query = query.filter(FollowUp.patient_id == patient_id)
        if date_from is not None:
            query = query.filter(FollowUp.due_date >= date_from)
        if date_to is not None:
            query = query.filter(FollowUp.due_date <= date_to)
        return query.order_by(FollowUp.due_date.asc(), FollowUp.id.asc()).all()

    def update_followup(self, followup_id: int, **changes) -> FollowUp:
        followup = self.get(followup_id)
        unknown = set(changes) - set(FOLLOWUP_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f'Unknown follow-up field: {", ".join(sorted(unknown))}.')

        new_status = changes.get('status', followup.status)
        if new_status not in FOLLOWUP_STATUSES:
            raise ValidationError('Unknown follow-up status.')
        if new_status != followup.status and new_status not in FOLLOWUP_MANUAL_TRANSITIONS[followup.status]:
            raise InvalidTransitionError(f'Cannot change a follow-up from {followup.status} to {new_status}.')
        if 'due_date' in changes and followup.status != FOLLOWUP_WAITING:
            raise InvalidTransitionError('Only waiting follow-ups can be moved to another date.')

        if 'note' in changes:
            followup.note = _clean_note(changes['note'])
        if 'due_date' in changes:
            followup.due_date = changes['due_date']
        followup.status = new_status

        self._commit()
        self.db.refresh(followup)
        return followup

    def schedule_followup(
        self,
        followup_id: int,
        booking_date: date,
        slot_start: time,
        booked_by: str | None = None,
        now: datetime | None = None,
    ) -> tuple[FollowUp, Appointment]:
        followup = self.get(followup_id)
        if followup.status != FOLLOWUP_WAITING:
            raise InvalidTransitionError(f'Only waiting follow-ups can be scheduled (this one is {followup.status}).')

        def link_followup(appointment: Appointment) -> None:
            followup.status = FOLLOWUP_SCHEDULED
            followup.appointment_id = appointment.id

        appointment = self.coordinator.create_booking(
            patient_id=followup.patient_id,
            doctor_id=followup.doctor_id,
            department_id=followup.department_id,
            booking_date=booking_date,
            slot_start=slot_start,
            purpose=_followup_purpose(followup.note),
            booked_by=booked_by,
            now=now,
            before_commit=link_followup,
        )
        self.db.refresh(followup)
        logger.info('Follow-up %s scheduled as appointment %s', followup_id, appointment.id)
        return followup, appointment

    def reschedule_from_no_show(
        self,
        old_appointment_id: int,
        booking_date: date,
        slot_start: time,
        booked_by: str | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        old_appointment = self.coordinator.ledger.get(old_appointment_id)
        if old_appointment.status != NO_SHOW:
            raise InvalidTransitionError('Only no-show appointments can be rescheduled.')

        appointment = self.coordinator.create_booking(
            patient_id=old_appointment.patient_id,
            doctor_id=old_appointment.doctor_id,
            department_id=old_appointment.department_id,
            booking_date=booking_date,
            slot_start=slot_start,
            purpose=old_appointment.purpose,
            booked_by=booked_by,
            now=now,
            rescheduled_from_id=old_appointment.id,
        )
        logger.info('No-show %s rebooked as appointment %s', old_appointment_id, appointment.id)
        return appointment

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Follow-up write failed')
            raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc
