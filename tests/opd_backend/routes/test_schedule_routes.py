from datetime import time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from opd_backend.routes.schedule_routes import (
    CreateScheduleRequest,
    UpdateScheduleRequest,
    create_schedule,
    delete_schedule,
    list_doctor_weekdays,
    list_schedules,
    update_schedule,
)


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('opd_backend.routes.schedule_routes.ensure_database_ready', lambda: None)


def test_create_schedule_request_normalizes_location() -> None:
    request = CreateScheduleRequest(
        doctor_id=1,
        weekday=0,
        start_time='09:00',
        end_time='13:00',
        location='  OPD Room 2 ',
    )

    assert request.location == 'OPD Room 2'
    assert request.slot_minutes is None


@pytest.mark.parametrize(
    'payload',
    [
        {'doctor_id': 1, 'weekday': 7, 'start_time': '09:00', 'end_time': '13:00'},
        {'doctor_id': 1, 'weekday': 0, 'start_time': '13:00', 'end_time': '09:00'},
        {'doctor_id': 1, 'weekday': 0, 'start_time': '09:00', 'end_time': '13:00', 'slot_minutes': 0},
    ],
)
def test_create_schedule_request_rejects_invalid_payloads(payload) -> None:
    with pytest.raises(ValidationError):
        CreateScheduleRequest(**payload)


def test_schedule_lifecycle(db) -> None:
    created = create_schedule(
        CreateScheduleRequest(doctor_id=1, weekday=0, start_time=time(9, 0), end_time=time(13, 0)),
        db=db,
    )

    updated = update_schedule(created.id, UpdateScheduleRequest(slot_minutes=20, location='Room 9'), db=db)
    assert (updated.slot_minutes, updated.location, updated.start_time) == (20, 'Room 9', time(9, 0))

    assert [entry.id for entry in list_schedules(doctor_id=1, db=db)] == [created.id]

    delete_schedule(created.id, db=db)
    assert list_schedules(doctor_id=1, db=db) == []


def test_duplicate_weekday_is_409(db) -> None:
    request = CreateScheduleRequest(doctor_id=1, weekday=3, start_time=time(9, 0), end_time=time(13, 0))
    create_schedule(request, db=db)

    with pytest.raises(HTTPException) as exception_info:
        create_schedule(request, db=db)

    assert exception_info.value.status_code == 409


def test_update_that_inverts_window_is_400(db) -> None:
    created = create_schedule(
        CreateScheduleRequest(doctor_id=1, weekday=0, start_time=time(9, 0), end_time=time(13, 0)),
        db=db,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_schedule(created.id, UpdateScheduleRequest(start_time=time(14, 0)), db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Schedule start time must be before its end time.'


def test_delete_missing_schedule_is_404(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        delete_schedule(41, db=db)

    assert exception_info.value.status_code == 404


def test_list_doctor_weekdays(db) -> None:
    for weekday in (3, 1):
        create_schedule(
            CreateScheduleRequest(doctor_id=5, weekday=weekday, start_time=time(9, 0), end_time=time(12, 0)),
            db=db,
        )

    response = list_doctor_weekdays(doctor_id=5, db=db)

    assert response.doctor_id == 5
    assert response.weekdays == [1, 3]
