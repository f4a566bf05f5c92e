import logging
from datetime import time

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from opd_backend.core import config
from opd_backend.models.schedule import DoctorSchedule
from opd_backend.scheduling.errors import DuplicateScheduleError, NotFoundError, StoreError, ValidationError
from opd_backend.scheduling.slots import normalize_slot_time

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ('weekday', 'start_time', 'end_time', 'slot_minutes', 'location', 'is_active')


def validate_schedule_window(weekday: int, start_time: time, end_time: time, slot_minutes: int) -> None:
    if weekday < 0 or weekday > 6:
        raise ValidationError('Weekday must be between 0 (Monday) and 6 (Sunday).')
    if slot_minutes <= 0:
        raise ValidationError('Slot length must be a positive number of minutes.')
    if normalize_slot_time(start_time) >= normalize_slot_time(end_time):
        raise ValidationError('Schedule start time must be before its end time.')


class ScheduleStore:
    """Read and administer doctors' weekly schedule templates."""

    def __init__(self, db: Session):
        self.db = db

    def get_weekly_schedule(self, doctor_id: int, weekday: int) -> DoctorSchedule | None:
        return self.db.query(DoctorSchedule).filter(
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.weekday == weekday,
            DoctorSchedule.is_active.is_(True),
        ).first()

    def list_for_doctor(self, doctor_id: int) -> list[DoctorSchedule]:
        return self.db.query(DoctorSchedule).filter(
            DoctorSchedule.doctor_id == doctor_id,
        ).order_by(DoctorSchedule.weekday.asc()).all()

    def list_weekdays(self, doctor_id: int) -> list[int]:
        """Weekdays (0 = Monday) on which the doctor has an active schedule."""
        rows = self.db.query(DoctorSchedule.weekday).filter(
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.is_active.is_(True),
        ).order_by(DoctorSchedule.weekday.asc()).all()
        return [row.weekday for row in rows]

    def get(self, schedule_id: int) -> DoctorSchedule:
        entry = self.db.get(DoctorSchedule, schedule_id)
        if entry is None:
            raise NotFoundError('Schedule not found.')
        return entry

    def create(
        self,
        doctor_id: int,
        weekday: int,
        start_time: time,
        end_time: time,
        slot_minutes: int | None = None,
        location: str | None = None,
        is_active: bool = True,
    ) -> DoctorSchedule:
        slot_minutes = slot_minutes or config.DEFAULT_SLOT_MINUTES
        validate_schedule_window(weekday, start_time, end_time, slot_minutes)

        entry = DoctorSchedule(
            doctor_id=doctor_id,
            weekday=weekday,
            start_time=normalize_slot_time(start_time),
            end_time=normalize_slot_time(end_time),
            slot_minutes=slot_minutes,
            location=location,
            is_active=is_active,
        )
        self.db.add(entry)
        self._commit()
        self.db.refresh(entry)
        logger.info('Saved schedule for doctor %s weekday %s', doctor_id, weekday)
        return entry

    def update(self, schedule_id: int, **changes) -> DoctorSchedule:
        entry = self.get(schedule_id)
        for field, value in changes.items():
            if field not in SCHEDULE_FIELDS:
                raise ValidationError(f'Unknown schedule field: {field}.')
            if field in ('start_time', 'end_time') and value is not None:
                value = normalize_slot_time(value)
            setattr(entry, field, value)

        try:
            validate_schedule_window(entry.weekday, entry.start_time, entry.end_time, entry.slot_minutes)
        except ValidationError:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(entry)
        return entry

    def delete(self, schedule_id: int) -> None:
        # Existing appointments are left alone; they stay valid history.
        entry = self.get(schedule_id)
        self.db.delete(entry)
        self._commit()
        logger.info('Deleted schedule %s for doctor %s', schedule_id, entry.doctor_id)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateScheduleError('A schedule already exists for this doctor on that weekday.') from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Schedule store write failed')
            raise StoreError('Schedule store unavailable.') from exc
