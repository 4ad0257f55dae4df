from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Protocol, Set
from datetime import datetime, date, timedelta, timezone

from ..lifecycle import AppointmentStatus


@dataclass
class AppointmentDto:
    id: str
    doctor_id: str
    patient_id: str
    scheduled_at: datetime
    status: AppointmentStatus
    consultation_fee: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    doctor_name: Optional[str] = None
    doctor_email: Optional[str] = None
    doctor_specialization: Optional[str] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None


@dataclass
class NewAppointment:
    doctor_id: str
    patient_id: str
    scheduled_at: datetime
    consultation_fee: float
    notes: Optional[str] = None


@dataclass
class AppointmentFilters:
    """Read-side filters shared by the stores and the client mirror.

    ``statuses`` empty means every status, ``day`` is a UTC calendar day and
    ``text`` is matched case-insensitively against participant names and
    emails.
    """
    statuses: FrozenSet[AppointmentStatus] = field(default_factory=frozenset)
    text: Optional[str] = None
    day: Optional[date] = None

    @property
    def search_term(self) -> Optional[str]:
        if self.text is None:
            return None
        term = self.text.strip().lower()
        return term or None

    def day_bounds(self):
        start = datetime(self.day.year, self.day.month, self.day.day, tzinfo=timezone.utc)
        return start, start + timedelta(days=1)

    def matches(self, appt: AppointmentDto) -> bool:
        if self.statuses and appt.status not in self.statuses:
            return False
        term = self.search_term
        if term:
            haystack = (
                appt.patient_name,
                appt.patient_email,
                appt.doctor_name,
                appt.doctor_email,
            )
            if not any(term in value.lower() for value in haystack if value):
                return False
        if self.day is not None:
            if appt.scheduled_at.date() != self.day:
                return False
        return True

    def apply(self, appointments: List[AppointmentDto]) -> List[AppointmentDto]:
        return [a for a in appointments if self.matches(a)]


NO_FILTERS = AppointmentFilters()


class AppointmentsRepository(Protocol):
    def create(self, new: NewAppointment) -> AppointmentDto:
        ...

    def get(self, appointment_id: str) -> AppointmentDto:
        ...

    def list_by_doctor(self, doctor_id: str, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        ...

    def list_by_patient(self, patient_id: str, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        ...

    def update_status(self, appointment_id: str, new_status: AppointmentStatus, expected_status: Optional[AppointmentStatus] = None) -> AppointmentDto:
        ...

    def held_times(self, doctor_id: str, day: date) -> Set[datetime]:
        ...

    def status_counts(self, doctor_id: Optional[str] = None, patient_id: Optional[str] = None) -> Dict[AppointmentStatus, int]:
        ...
