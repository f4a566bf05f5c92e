from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from opd_backend.core import config
from opd_backend.models.status import LIVE_STATUS_SQL


def build_engine(database_url: str, echo: bool = False):
    connect_args = {}
    if database_url.startswith('sqlite'):
        connect_args['check_same_thread'] = False
    return create_engine(database_url, echo=echo, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False


def ensure_scheduling_schema(bind=None) -> None:
    """Bring tables created by older releases up to the current layout.

    New databases get everything from ``Base.metadata.create_all``; this only
    adds the columns and live-status unique indexes that legacy tables lack.
    """
    global _scheduling_schema_checked

    if _scheduling_schema_checked and bind is None:
        return

    target = bind if bind is not None else engine

    with _schema_lock:
        if _scheduling_schema_checked and bind is None:
            return

        inspector = inspect(target)
        table_names = inspector.get_table_names()
        columns_by_table = {
            table_name: {column['name'] for column in inspector.get_columns(table_name)}
            for table_name in ('opd_schedules', 'opd_appointments')
            if table_name in table_names
        }

        with target.begin() as connection:
            if 'opd_schedules' in table_names:
                existing_columns = columns_by_table['opd_schedules']
                migration_steps = [
                    ('location', 'ALTER TABLE opd_schedules ADD COLUMN location VARCHAR'),
                    ('is_active', 'ALTER TABLE opd_schedules ADD COLUMN is_active BOOLEAN DEFAULT TRUE'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))

            if 'opd_appointments' in table_names:
                existing_columns = columns_by_table['opd_appointments']
                migration_steps = [
                    ('booked_by', 'ALTER TABLE opd_appointments ADD COLUMN booked_by VARCHAR'),
                    ('rescheduled_from_id', 'ALTER TABLE opd_appointments ADD COLUMN rescheduled_from_id INTEGER'),
                    ('updated_at', 'ALTER TABLE opd_appointments ADD COLUMN updated_at TIMESTAMP'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_opd_appointments_doctor_slot_live '
                        f'ON opd_appointments(doctor_id, date, slot_start) WHERE {LIVE_STATUS_SQL}'
                    )
                )
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_opd_appointments_patient_day_live '
                        f'ON opd_appointments(patient_id, date) WHERE {LIVE_STATUS_SQL}'
                    )
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_opd_appointments_status_date ON opd_appointments(status, date)')
                )

        if bind is None:
            _scheduling_schema_checked = True
