# carebook/schemas/doctors/doctor.py
from pydantic import BaseModel
from typing import List
from datetime import date

from ...application.ports.directory_repo import DoctorDto

class DoctorResponse(BaseModel):
    id: str
    name: str
    specialization: str
    consultation_fee: float
    experience_years: int

    @classmethod
    def from_dto(cls, d: DoctorDto) -> "DoctorResponse":
        return cls(
            id=d.id,
            name=d.name,
            specialization=d.specialization,
            consultation_fee=d.consultation_fee,
            experience_years=d.experience_years,
        )

class SlotsResponse(BaseModel):
    doctor_id: str
    date: date
    slots: List[str]  # HH:MM, UTC
