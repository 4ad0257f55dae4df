from typing import Dict, Iterable, List, Optional

from ....application.ports.directory_repo import Directory, DoctorDto, PatientDto


class InMemoryDirectory(Directory):
    def __init__(self, doctors: Iterable[DoctorDto] = (), patients: Iterable[PatientDto] = ()) -> None:
        self._doctors: Dict[str, DoctorDto] = {d.id: d for d in doctors}
        self._patients: Dict[str, PatientDto] = {p.id: p for p in patients}

    def add_doctor(self, doctor: DoctorDto) -> None:
        self._doctors[doctor.id] = doctor

    def add_patient(self, patient: PatientDto) -> None:
        self._patients[patient.id] = patient

    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        return self._doctors.get(doctor_id)

    def get_patient(self, patient_id: str) -> Optional[PatientDto]:
        return self._patients.get(patient_id)

    def search_doctors(self, text: Optional[str] = None, specialization: Optional[str] = None) -> List[DoctorDto]:
        term = (text or "").strip().lower()
        out = []
        for d in self._doctors.values():
            if term and term not in d.name.lower():
                continue
            if specialization and d.specialization != specialization:
                continue
            out.append(d)
        return sorted(out, key=lambda d: d.name)

    def specializations(self) -> List[str]:
        return sorted({d.specialization for d in self._doctors.values()})
