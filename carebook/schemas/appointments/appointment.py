# carebook/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ...application.lifecycle import AppointmentStatus
from ...application.ports.appointments_repo import AppointmentDto

class AppointmentCreate(BaseModel):
    doctor_id: str
    scheduled_at: datetime  # ISO-8601, naive values are UTC
    notes: Optional[str] = Field(default=None, max_length=2000)

class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus

class AppointmentResponse(BaseModel):
    id: str
    doctor_id: str
    patient_id: str
    scheduled_at: datetime
    status: AppointmentStatus
    consultation_fee: float
    notes: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_email: Optional[str] = None
    doctor_specialization: Optional[str] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dto(cls, a: AppointmentDto) -> "AppointmentResponse":
        return cls(
            id=a.id,
            doctor_id=a.doctor_id,
            patient_id=a.patient_id,
            scheduled_at=a.scheduled_at,
            status=a.status,
            consultation_fee=a.consultation_fee,
            notes=a.notes,
            doctor_name=a.doctor_name,
            doctor_email=a.doctor_email,
            doctor_specialization=a.doctor_specialization,
            patient_name=a.patient_name,
            patient_email=a.patient_email,
            created_at=a.created_at,
            updated_at=a.updated_at,
        )

    def to_dto(self) -> AppointmentDto:
        return AppointmentDto(
            id=self.id,
            doctor_id=self.doctor_id,
            patient_id=self.patient_id,
            scheduled_at=self.scheduled_at,
            status=self.status,
            consultation_fee=self.consultation_fee,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
            doctor_name=self.doctor_name,
            doctor_email=self.doctor_email,
            doctor_specialization=self.doctor_specialization,
            patient_name=self.patient_name,
            patient_email=self.patient_email,
        )

class AppointmentCounts(BaseModel):
    all: int
    pending: int
    confirmed: int
    completed: int
    cancelled: int
