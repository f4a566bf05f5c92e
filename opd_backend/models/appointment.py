"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Time, text

from opd_backend.database import Base
from opd_backend.models.status import BOOKED, LIVE_STATUS_SQL


class Appointment(Base):
    """Represents a booked OPD appointment.

    Rows are never deleted; cancellation and no-show are statuses so the
    ledger keeps its full history.
    """
    __tablename__ = "opd_appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, nullable=False)
    doctor_id = Column(Integer, nullable=False)
    department_id = Column(Integer)
    date = Column(Date, nullable=False)
    slot_start = Column(Time, nullable=False)
    slot_end = Column(Time, nullable=False)
    status = Column(String, nullable=False, default=BOOKED)
    purpose = Column(String)
    booked_by = Column(String)
    rescheduled_from_id = Column(Integer, ForeignKey("opd_appointments.id"))
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index(
            "uq_opd_appointments_doctor_slot_live",
            "doctor_id",
            "date",
            "slot_start",
            unique=True,
            sqlite_where=text(LIVE_STATUS_SQL),
            postgresql_where=text(LIVE_STATUS_SQL),
        ),
        Index(
            "uq_opd_appointments_patient_day_live",
            "patient_id",
            "date",
            unique=True,
            sqlite_where=text(LIVE_STATUS_SQL),
            postgresql_where=text(LIVE_STATUS_SQL),
        ),
        Index("idx_opd_appointments_status_date", "status", "date"),
    )
