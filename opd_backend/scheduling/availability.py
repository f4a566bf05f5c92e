"""Merge generated slots with the booking ledger and the clock.

This is the only place slot state is decided. Callers display what it
returns and never recompute booked or past themselves.
"""

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from opd_backend.scheduling.ledger import BookingLedger
from opd_backend.scheduling.schedule_store import ScheduleStore
from opd_backend.scheduling.slots import SlotInterval, iterate_slots, normalize_slot_time

FREE = 'free'
BOOKED = 'booked'
PAST = 'past'


@dataclass(frozen=True, slots=True)
class SlotAvailability:
    slot: SlotInterval
    state: str

    @property
    def is_free(self) -> bool:
        return self.state == FREE


def slot_state(slot: SlotInterval, target_date: date, now: datetime, booked_starts: set) -> str:
    if slot.start in booked_starts:
        return BOOKED
    today = now.date()
    if target_date < today:
        return PAST
    if target_date == today and slot.start <= normalize_slot_time(now.time()):
        return PAST
    return FREE


class AvailabilityResolver:
    """Read-only view of a doctor's day; holds no state of its own."""

    def __init__(self, db: Session, schedules: ScheduleStore | None = None, ledger: BookingLedger | None = None):
        self.schedules = schedules or ScheduleStore(db)
        self.ledger = ledger or BookingLedger(db)

    def get_availability(self, doctor_id: int, target_date: date, now: datetime) -> list[SlotAvailability]:
        """Return every candidate slot for the day with its state.

        Slots stay in generation order and none are dropped. With no schedule
        for that weekday the list is empty, same as a day with nothing free.
        """
        entry = self.schedules.get_weekly_schedule(doctor_id, target_date.weekday())
        candidates = list(iterate_slots(entry, target_date))
        if not candidates:
            return []

        booked_starts = {
            normalize_slot_time(appointment.slot_start)
            for appointment in self.ledger.list_active_appointments(doctor_id, target_date)
        }

        return [
            SlotAvailability(slot=slot, state=slot_state(slot, target_date, now, booked_starts))
            for slot in candidates
        ]

    def free_slots(self, doctor_id: int, target_date: date, now: datetime) -> list[SlotInterval]:
        return [item.slot for item in self.get_availability(doctor_id, target_date, now) if item.is_free]
