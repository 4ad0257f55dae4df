from dataclasses import dataclass, field
from typing import List, Optional, Protocol


@dataclass
class DoctorDto:
    id: str
    name: str
    email: str
    specialization: str
    consultation_fee: float
    experience_years: int = 0
    # "HH:MM-HH:MM" windows, UTC; empty means the configured default
    working_hours: List[str] = field(default_factory=list)
    slot_minutes: Optional[int] = None


@dataclass
class PatientDto:
    id: str
    name: str
    email: str
    phone: Optional[str] = None


class Directory(Protocol):
    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        ...

    def get_patient(self, patient_id: str) -> Optional[PatientDto]:
        ...

    def search_doctors(self, text: Optional[str] = None, specialization: Optional[str] = None) -> List[DoctorDto]:
        ...

    def specializations(self) -> List[str]:
        ...
