import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opd_backend.models.appointment import Appointment
from opd_backend.models.status import LIVE_APPOINTMENT_STATUSES, NO_SHOW
from opd_backend.scheduling.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class BookingLedger:
    """Data access for persisted appointments.

    Only the booking coordinator writes through this class; everything else
    reads.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError('Appointment not found.')
        return appointment

    def list_active_appointments(self, doctor_id: int, on_date: date) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.date == on_date,
            Appointment.status.in_(LIVE_APPOINTMENT_STATUSES),
        ).order_by(Appointment.slot_start.asc()).all()

    def list_active_appointments_for_patient(self, patient_id: int, on_date: date) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.date == on_date,
            Appointment.status.in_(LIVE_APPOINTMENT_STATUSES),
        ).order_by(Appointment.slot_start.asc()).all()

    def list_appointments(
        self,
        on_date: date | None = None,
        doctor_id: int | None = None,
        patient_id: int | None = None,
        status: str | None = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment)
        if on_date is not None:
            query = query.filter(Appointment.date == on_date)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if status is not None:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.date.asc(), Appointment.slot_start.asc(), Appointment.id.asc()).all()

    def list_no_shows(self, on_date: date | None = None, doctor_id: int | None = None) -> list[Appointment]:
        return self.list_appointments(on_date=on_date, doctor_id=doctor_id, status=NO_SHOW)

    def insert_appointment(self, appointment: Appointment) -> int:
        """Stage ``appointment`` and flush it so the constraints are checked.

        Returns the new id. Raises ``ConflictError`` after rolling back when a
        live-status uniqueness index rejects the row. The caller commits.
        """
        self.db.add(appointment)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(
                'Insert rejected for doctor %s on %s at %s: %s',
                appointment.doctor_id,
                appointment.date,
                appointment.slot_start,
                exc.orig,
            )
            raise ConflictError(str(exc.orig)) from exc
        return appointment.id
