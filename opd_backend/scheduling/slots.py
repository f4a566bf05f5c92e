"""Slot generation from weekly schedule templates.

Pure functions only: nothing here touches the database or the clock.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta


@dataclass(frozen=True, slots=True)
class SlotInterval:
    start: time
    end: time

    def label(self) -> str:
        return self.start.strftime('%H:%M')


def normalize_slot_time(value: time) -> time:
    """Drop seconds so stored and requested slot starts compare equal."""
    return value.replace(second=0, microsecond=0, tzinfo=None)


def iterate_slots(entry, target_date: date) -> Iterator[SlotInterval]:
    """Yield the slots ``entry`` offers on ``target_date``.

    ``entry`` is a weekly schedule row (or ``None``). Nothing is yielded when
    there is no entry, it is inactive, or it belongs to another weekday. A
    trailing remainder shorter than ``slot_minutes`` is not offered.
    """
    if entry is None or not getattr(entry, 'is_active', True):
        return
    if entry.weekday != target_date.weekday():
        return

    step = timedelta(minutes=entry.slot_minutes)
    current = datetime.combine(target_date, normalize_slot_time(entry.start_time))
    day_end = datetime.combine(target_date, normalize_slot_time(entry.end_time))

    while current + step <= day_end:
        yield SlotInterval(start=current.time(), end=(current + step).time())
        current += step


def generate_slots(entry, target_date: date) -> list[SlotInterval]:
    return list(iterate_slots(entry, target_date))
