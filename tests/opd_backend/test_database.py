from sqlalchemy import create_engine, inspect, text

from opd_backend.database import ensure_scheduling_schema


def test_ensure_scheduling_schema_upgrades_legacy_tables(tmp_path) -> None:
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as connection:
        connection.execute(
            text(
                'CREATE TABLE opd_appointments ('
                'id INTEGER PRIMARY KEY, patient_id INTEGER, doctor_id INTEGER, department_id INTEGER, '
                'date DATE, slot_start TIME, slot_end TIME, status VARCHAR, purpose VARCHAR, created_at DATETIME)'
            )
        )
        connection.execute(
            text(
                'CREATE TABLE opd_schedules ('
                'id INTEGER PRIMARY KEY, doctor_id INTEGER, weekday INTEGER, '
                'start_time TIME, end_time TIME, slot_minutes INTEGER)'
            )
        )

    try:
        ensure_scheduling_schema(bind=engine)

        inspector = inspect(engine)
        appointment_columns = {column['name'] for column in inspector.get_columns('opd_appointments')}
        schedule_columns = {column['name'] for column in inspector.get_columns('opd_schedules')}
        index_names = {index['name'] for index in inspector.get_indexes('opd_appointments')}

        assert {'booked_by', 'rescheduled_from_id', 'updated_at'} <= appointment_columns
        assert {'location', 'is_active'} <= schedule_columns
        assert {
            'uq_opd_appointments_doctor_slot_live',
            'uq_opd_appointments_patient_day_live',
            'idx_opd_appointments_status_date',
        } <= index_names

        with engine.begin() as connection:
            connection.execute(
                text(
                    "INSERT INTO opd_appointments (patient_id, doctor_id, date, slot_start, slot_end, status) "
                    "VALUES (1, 1, '2026-01-05', '09:00:00.000000', '09:30:00.000000', 'cancelled')"
                )
            )
            connection.execute(
                text(
                    "INSERT INTO opd_appointments (patient_id, doctor_id, date, slot_start, slot_end, status) "
                    "VALUES (2, 1, '2026-01-05', '09:00:00.000000', '09:30:00.000000', 'booked')"
                )
            )
            count = connection.execute(text('SELECT COUNT(*) FROM opd_appointments')).scalar()
        assert count == 2
    finally:
        engine.dispose()
