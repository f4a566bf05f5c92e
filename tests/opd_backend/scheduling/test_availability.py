from datetime import date, datetime, time

from opd_backend.models.appointment import Appointment
from opd_backend.scheduling.availability import BOOKED, FREE, PAST, AvailabilityResolver
from opd_backend.scheduling.booking import BookingCoordinator

MONDAY = date(2026, 1, 5)
BEFORE_OPENING = datetime(2026, 1, 5, 8, 0)


def _states(availability) -> list[tuple[time, str]]:
    return [(item.slot.start, item.state) for item in availability]


def test_monday_schedule_reports_every_slot_free(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0, start_time=time(9, 0), end_time=time(10, 0), slot_minutes=30)

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, BEFORE_OPENING)

    assert _states(availability) == [(time(9, 0), FREE), (time(9, 30), FREE)]
    assert availability[0].slot.end == time(9, 30)
    assert availability[1].slot.end == time(10, 0)


def test_booked_slot_is_marked_booked(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0)
    BookingCoordinator(db).create_booking(
        patient_id=10,
        doctor_id=1,
        department_id=3,
        booking_date=MONDAY,
        slot_start=time(9, 0),
        now=BEFORE_OPENING,
    )

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, BEFORE_OPENING)

    assert _states(availability) == [(time(9, 0), BOOKED), (time(9, 30), FREE)]


def test_no_schedule_returns_empty_list(db) -> None:
    assert AvailabilityResolver(db).get_availability(1, MONDAY, BEFORE_OPENING) == []


def test_other_doctors_bookings_do_not_leak(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0)
    add_schedule(doctor_id=2, weekday=0)
    BookingCoordinator(db).create_booking(
        patient_id=10,
        doctor_id=2,
        department_id=3,
        booking_date=MONDAY,
        slot_start=time(9, 0),
        now=BEFORE_OPENING,
    )

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, BEFORE_OPENING)

    assert all(item.state == FREE for item in availability)


def test_earlier_date_is_entirely_past(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0)

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, datetime(2026, 1, 6, 7, 0))

    assert _states(availability) == [(time(9, 0), PAST), (time(9, 30), PAST)]


def test_slot_starting_exactly_now_is_past(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0, start_time=time(9, 0), end_time=time(11, 0), slot_minutes=30)

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, datetime(2026, 1, 5, 9, 30))

    assert _states(availability) == [
        (time(9, 0), PAST),
        (time(9, 30), PAST),
        (time(10, 0), FREE),
        (time(10, 30), FREE),
    ]


def test_booked_wins_over_past(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0)
    db.add(
        Appointment(
            patient_id=10,
            doctor_id=1,
            date=MONDAY,
            slot_start=time(9, 0),
            slot_end=time(9, 30),
            status='in_progress',
            created_at=BEFORE_OPENING,
        )
    )
    db.commit()

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, datetime(2026, 1, 5, 9, 45))

    assert _states(availability) == [(time(9, 0), BOOKED), (time(9, 30), PAST)]


def test_repeated_queries_return_identical_results(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0, start_time=time(9, 0), end_time=time(13, 0), slot_minutes=15)
    resolver = AvailabilityResolver(db)

    first = resolver.get_availability(1, MONDAY, BEFORE_OPENING)
    second = resolver.get_availability(1, MONDAY, BEFORE_OPENING)

    assert len(first) == 16
    assert first == second


def test_cancelling_frees_the_slot(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0)
    coordinator = BookingCoordinator(db)
    appointment = coordinator.create_booking(
        patient_id=10,
        doctor_id=1,
        department_id=3,
        booking_date=MONDAY,
        slot_start=time(9, 0),
        now=BEFORE_OPENING,
    )

    coordinator.transition_status(appointment.id, 'cancelled')

    availability = AvailabilityResolver(db).get_availability(1, MONDAY, BEFORE_OPENING)
    assert _states(availability)[0] == (time(9, 0), FREE)


def test_free_slots_filters_to_bookable_slots(db, add_schedule) -> None:
    add_schedule(doctor_id=1, weekday=0, start_time=time(9, 0), end_time=time(11, 0), slot_minutes=30)
    BookingCoordinator(db).create_booking(
        patient_id=10,
        doctor_id=1,
        department_id=3,
        booking_date=MONDAY,
        slot_start=time(10, 0),
        now=BEFORE_OPENING,
    )

    free = AvailabilityResolver(db).free_slots(1, MONDAY, datetime(2026, 1, 5, 9, 10))

    assert [slot.label() for slot in free] == ['09:30', '10:30']
