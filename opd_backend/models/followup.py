"""Follow-up model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String

from opd_backend.database import Base
from opd_backend.models.status import FOLLOWUP_WAITING


class FollowUp(Base):
    """A requested return visit that becomes an appointment once scheduled."""
    __tablename__ = "opd_followups"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, nullable=False, index=True)
    doctor_id = Column(Integer, nullable=False, index=True)
    department_id = Column(Integer)
    due_date = Column(Date, nullable=False)
    note = Column(String)
    status = Column(String, nullable=False, default=FOLLOWUP_WAITING)
    appointment_id = Column(Integer, ForeignKey("opd_appointments.id"))
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
