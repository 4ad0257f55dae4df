# carebook/db/models/health/doctor.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=100, unique=True, index=True)
    specialization: str = Field(max_length=100, index=True)
    consultation_fee: float = Field(default=0.0, ge=0)
    experience_years: int = Field(default=0)
    # Comma separated "HH:MM-HH:MM" windows in UTC; empty uses the default template
    working_hours: str = Field(default="")
    slot_minutes: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
