from typing import List, Optional
from sqlmodel import Session, select

from .....application.ports.directory_repo import Directory, DoctorDto, PatientDto
from .....db.models import Doctor, Patient


class SqlDirectoryRepository(Directory):
    def __init__(self, session: Session):
        self.session = session

    def _doctor_to_dto(self, d: Doctor) -> DoctorDto:
        return DoctorDto(
            id=d.id,
            name=d.name,
            email=d.email,
            specialization=d.specialization,
            consultation_fee=d.consultation_fee,
            experience_years=d.experience_years,
            working_hours=[w.strip() for w in d.working_hours.split(",") if w.strip()] if d.working_hours else [],
            slot_minutes=d.slot_minutes,
        )

    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        d = self.session.exec(select(Doctor).where(Doctor.id == doctor_id)).first()
        return self._doctor_to_dto(d) if d else None

    def get_patient(self, patient_id: str) -> Optional[PatientDto]:
        p = self.session.exec(select(Patient).where(Patient.id == patient_id)).first()
        if not p:
            return None
        return PatientDto(id=p.id, name=p.name, email=p.email, phone=p.phone)

    def search_doctors(self, text: Optional[str] = None, specialization: Optional[str] = None) -> List[DoctorDto]:
        query = select(Doctor)
        if text and text.strip():
            query = query.where(Doctor.name.ilike(f"%{text.strip()}%"))
        if specialization:
            query = query.where(Doctor.specialization == specialization)
        rows = self.session.exec(query.order_by(Doctor.name)).all()
        return [self._doctor_to_dto(d) for d in rows]

    def specializations(self) -> List[str]:
        rows = self.session.exec(select(Doctor.specialization).distinct().order_by(Doctor.specialization)).all()
        return list(rows)
