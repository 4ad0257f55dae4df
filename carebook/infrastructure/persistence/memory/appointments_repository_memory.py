import threading
from collections import Counter
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Tuple

from ....application.lifecycle import ACTIVE_STATUSES, AppointmentStatus, can_transition
from ....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentFilters,
    NewAppointment,
    NO_FILTERS,
)
from ....application.ports.directory_repo import Directory
from ....exceptions import ConflictError, InvalidTransitionError, NotFoundError
from ....utils import generate_id, to_utc, utcnow


class InMemoryAppointmentsRepository(AppointmentsRepository):
    """Process-local store guarded by one lock.

    Every read-check-write runs under the lock, so slot uniqueness and the
    per-appointment compare-and-set are serialized.
    """

    def __init__(self, directory: Optional[Directory] = None) -> None:
        self._directory = directory
        self._lock = threading.Lock()
        self._appts: Dict[str, AppointmentDto] = {}
        # (doctor_id, scheduled_at) -> appointment id, non-cancelled only
        self._held: Dict[Tuple[str, datetime], str] = {}

    def _decorate(self, a: AppointmentDto) -> AppointmentDto:
        out = replace(a)
        if self._directory is None:
            return out
        doctor = self._directory.get_doctor(a.doctor_id)
        if doctor:
            out.doctor_name = doctor.name
            out.doctor_email = doctor.email
            out.doctor_specialization = doctor.specialization
        patient = self._directory.get_patient(a.patient_id)
        if patient:
            out.patient_name = patient.name
            out.patient_email = patient.email
        return out

    def create(self, new: NewAppointment) -> AppointmentDto:
        scheduled_at = to_utc(new.scheduled_at)
        key = (new.doctor_id, scheduled_at)
        with self._lock:
            if key in self._held:
                raise ConflictError("This time slot has just been booked")
            now = utcnow()
            appt = AppointmentDto(
                id=generate_id(),
                doctor_id=new.doctor_id,
                patient_id=new.patient_id,
                scheduled_at=scheduled_at,
                status=AppointmentStatus.PENDING,
                consultation_fee=new.consultation_fee,
                notes=new.notes,
                created_at=now,
                updated_at=now,
            )
            self._appts[appt.id] = appt
            self._held[key] = appt.id
        return self._decorate(appt)

    def get(self, appointment_id: str) -> AppointmentDto:
        with self._lock:
            a = self._appts.get(appointment_id)
        if not a:
            raise NotFoundError("Appointment not found")
        return self._decorate(a)

    def _list(self, predicate, filters: AppointmentFilters) -> List[AppointmentDto]:
        with self._lock:
            rows = [a for a in self._appts.values() if predicate(a)]
        rows = filters.apply([self._decorate(a) for a in rows])
        return sorted(rows, key=lambda a: a.scheduled_at)

    def list_by_doctor(self, doctor_id: str, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        return self._list(lambda a: a.doctor_id == doctor_id, filters)

    def list_by_patient(self, patient_id: str, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        return self._list(lambda a: a.patient_id == patient_id, filters)

    def update_status(self, appointment_id: str, new_status: AppointmentStatus, expected_status: Optional[AppointmentStatus] = None) -> AppointmentDto:
        new_status = AppointmentStatus(new_status)
        with self._lock:
            a = self._appts.get(appointment_id)
            if not a:
                raise NotFoundError("Appointment not found")
            if expected_status is not None and a.status != expected_status:
                raise ConflictError(
                    f"Appointment is now {a.status.value}; it was changed by another request"
                )
            if not can_transition(a.status, new_status):
                raise InvalidTransitionError(
                    f"Cannot change an appointment from {a.status.value} to {new_status.value}"
                )
            updated = replace(a, status=new_status, updated_at=utcnow())
            self._appts[appointment_id] = updated
            if new_status not in ACTIVE_STATUSES:
                self._held.pop((a.doctor_id, a.scheduled_at), None)
        return self._decorate(updated)

    def held_times(self, doctor_id: str, day: date) -> Set[datetime]:
        with self._lock:
            return {
                at for (d_id, at) in self._held
                if d_id == doctor_id and at.date() == day
            }

    def status_counts(self, doctor_id: Optional[str] = None, patient_id: Optional[str] = None) -> Dict[AppointmentStatus, int]:
        with self._lock:
            return dict(Counter(
                a.status for a in self._appts.values()
                if (doctor_id is None or a.doctor_id == doctor_id)
                and (patient_id is None or a.patient_id == patient_id)
            ))
