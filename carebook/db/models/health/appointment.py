# carebook/db/models/health/appointment.py
from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    # One live appointment per doctor and start time; cancelled rows free the slot
    __table_args__ = (
        Index(
            "uq_appointments_doctor_slot_active",
            "doctor_id",
            "scheduled_at",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    doctor_id: str = Field(foreign_key="doctors.id", index=True)
    patient_id: str = Field(foreign_key="patients.id", index=True)
    scheduled_at: datetime = Field(index=True)  # UTC
    status: str = Field(default="pending", max_length=20)
    consultation_fee: float
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
