import logging
from collections.abc import Callable
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.core import config
from opd_backend.models.appointment import Appointment
from opd_backend.models.followup import FollowUp
from opd_backend.models.status import (
    APPOINTMENT_STATUSES,
    APPOINTMENT_TRANSITIONS,
    BOOKED,
    CANCELLED,
    FOLLOWUP_SCHEDULED,
    FOLLOWUP_WAITING,
)
from opd_backend.scheduling.availability import AvailabilityResolver
from opd_backend.scheduling.errors import (
    ConflictError,
    DuplicateBookingError,
    InvalidTransitionError,
    SlotUnavailableError,
    StoreError,
    ValidationError,
)
from opd_backend.scheduling.ledger import BookingLedger
from opd_backend.scheduling.slots import normalize_slot_time

logger = logging.getLogger(__name__)

# One retry against fresh state after a uniqueness conflict, one after a
# transient database failure.
CONFLICT_RETRIES = 1
TRANSIENT_RETRIES = 1

STORE_UNAVAILABLE_MESSAGE = 'Booking store unavailable. Please try again.'


def check_not_past(booking_date: date, slot_start: time, now: datetime) -> None:
    today = now.date()
    if booking_date < today:
        raise ValidationError('Appointments cannot be booked for a past date.')
    if booking_date == today and slot_start <= normalize_slot_time(now.time()):
        raise ValidationError('This time slot has already passed.')


class BookingCoordinator:
    """Validates and commits bookings and appointment status changes.

    All appointment writes go through this class. Consistency under
    concurrent clerks comes from the ledger's live-status unique indexes; the
    checks here give precise errors, the indexes close the race.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.ledger = BookingLedger(db)
        self.resolver = AvailabilityResolver(db, ledger=self.ledger)

    def create_booking(
        self,
        patient_id: int,
        doctor_id: int,
        department_id: int | None,
        booking_date: date,
        slot_start: time,
        purpose: str | None = None,
        booked_by: str | None = None,
        now: datetime | None = None,
        rescheduled_from_id: int | None = None,
        before_commit: Callable[[Appointment], None] | None = None,
    ) -> Appointment:
        """Book ``slot_start`` on ``booking_date`` for the patient.

        ``before_commit`` runs inside the booking transaction once the new row
        has an id, so callers can attach related changes that must land (or
        fail) together with the appointment. It runs again on a retry.
        """
        now = now or self.clock()
        slot_start = normalize_slot_time(slot_start)
        if purpose is not None:
            purpose = purpose.strip() or None
        if purpose and len(purpose) > config.MAX_PURPOSE_LENGTH:
            raise ValidationError(f'Purpose must be {config.MAX_PURPOSE_LENGTH} characters or fewer.')

        check_not_past(booking_date, slot_start, now)

        conflict_retries = CONFLICT_RETRIES
        transient_retries = TRANSIENT_RETRIES
        while True:
            try:
                appointment = self._attempt_booking(
                    patient_id=patient_id,
                    doctor_id=doctor_id,
                    department_id=department_id,
                    booking_date=booking_date,
                    slot_start=slot_start,
                    purpose=purpose,
                    booked_by=booked_by,
                    now=now,
                    rescheduled_from_id=rescheduled_from_id,
                    before_commit=before_commit,
                )
            except ConflictError as exc:
                if conflict_retries == 0:
                    raise SlotUnavailableError(
                        'This slot was just booked by another user. Refresh availability and pick another slot.'
                    ) from exc
                conflict_retries -= 1
                logger.warning(
                    'Booking conflict for doctor %s on %s at %s; re-checking against fresh state',
                    doctor_id,
                    booking_date,
                    slot_start,
                )
                continue
            except OperationalError as exc:
                self.db.rollback()
                if transient_retries == 0:
                    logger.exception('Booking commit failed after retry')
                    raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc
                transient_retries -= 1
                logger.warning('Transient database failure while booking; retrying once')
                continue
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception('Booking commit failed')
                raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc

            logger.info(
                'Booked appointment %s: patient %s with doctor %s on %s at %s',
                appointment.id,
                patient_id,
                doctor_id,
                booking_date,
                slot_start.strftime('%H:%M'),
            )
            return appointment

    def _attempt_booking(
        self,
        patient_id,
        doctor_id,
        department_id,
        booking_date,
        slot_start,
        purpose,
        booked_by,
        now,
        rescheduled_from_id,
        before_commit,
    ) -> Appointment:
        availability = self.resolver.get_availability(doctor_id, booking_date, now)
        slot = next(
            (item.slot for item in availability if item.slot.start == slot_start and item.is_free),
            None,
        )
        if slot is None:
            raise SlotUnavailableError('Selected slot is not available for this doctor.')

        existing = self.ledger.list_active_appointments_for_patient(patient_id, booking_date)
        if existing:
            conflicting = existing[0]
            raise DuplicateBookingError(
                f'Patient already has an appointment on {booking_date.isoformat()} '
                f'at {normalize_slot_time(conflicting.slot_start).strftime("%H:%M")}.',
                conflicting=conflicting,
            )

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            department_id=department_id,
            date=booking_date,
            slot_start=slot.start,
            slot_end=slot.end,
            status=BOOKED,
            purpose=purpose,
            booked_by=booked_by,
            rescheduled_from_id=rescheduled_from_id,
            created_at=now,
        )
        self.ledger.insert_appointment(appointment)
        if before_commit is not None:
            before_commit(appointment)

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(str(exc.orig)) from exc

        self.db.refresh(appointment)
        return appointment

    def transition_status(self, appointment_id: int, new_status: str) -> Appointment:
        new_status = (new_status or '').strip().lower()
        if new_status not in APPOINTMENT_STATUSES:
            logger.warning('Rejected unknown status %r for appointment %s', new_status, appointment_id)
            raise InvalidTransitionError(f'Unknown appointment status: {new_status or "(empty)"}.')

        appointment = self.ledger.get(appointment_id)
        current_status = appointment.status
        if new_status not in APPOINTMENT_TRANSITIONS.get(current_status, frozenset()):
            logger.warning(
                'Rejected status change for appointment %s: %s -> %s',
                appointment_id,
                current_status,
                new_status,
            )
            raise InvalidTransitionError(f'Cannot change an appointment from {current_status} to {new_status}.')

        appointment.status = new_status
        if new_status == CANCELLED:
            self._release_followups(appointment)

        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Status update failed for appointment %s', appointment_id)
            raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc

        self.db.refresh(appointment)
        logger.info('Appointment %s moved from %s to %s', appointment_id, current_status, new_status)
        return appointment

    def _release_followups(self, appointment: Appointment) -> None:
        # A scheduled follow-up must point at a live appointment.
        linked = self.db.query(FollowUp).filter(
            FollowUp.appointment_id == appointment.id,
            FollowUp.status == FOLLOWUP_SCHEDULED,
        ).all()
        for followup in linked:
            followup.status = FOLLOWUP_WAITING
            followup.appointment_id = None
