import os
from datetime import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from opd_backend.database import Base  # noqa: E402
from opd_backend.models.appointment import Appointment  # noqa: E402,F401
from opd_backend.models.followup import FollowUp  # noqa: E402,F401
from opd_backend.models.schedule import DoctorSchedule  # noqa: E402


@pytest.fixture
def session_factory(tmp_path):
    # A file database so separate sessions behave like separate clerks.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'opd_test.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_schedule(db):
    def _add_schedule(
        doctor_id: int = 1,
        weekday: int = 0,
        start_time: time = time(9, 0),
        end_time: time = time(10, 0),
        slot_minutes: int = 30,
        **extra,
    ) -> DoctorSchedule:
        entry = DoctorSchedule(
            doctor_id=doctor_id,
            weekday=weekday,
            start_time=start_time,
            end_time=end_time,
            slot_minutes=slot_minutes,
            **extra,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _add_schedule
