"""Weekly OPD schedule model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, Time, UniqueConstraint

from opd_backend.database import Base


class DoctorSchedule(Base):
    """A doctor's recurring availability for one weekday (0 = Monday)."""
    __tablename__ = "opd_schedules"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, nullable=False, index=True)
    weekday = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_minutes = Column(Integer, nullable=False)
    location = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("doctor_id", "weekday", name="uq_opd_schedules_doctor_weekday"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_opd_schedules_weekday"),
        CheckConstraint("start_time < end_time", name="ck_opd_schedules_time_order"),
        CheckConstraint("slot_minutes > 0", name="ck_opd_schedules_slot_minutes"),
    )
