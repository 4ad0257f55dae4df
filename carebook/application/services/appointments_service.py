from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Dict, List, Optional, Sequence

from ...exceptions import ForbiddenError, NotFoundError
from ...utils import utcnow
from ..lifecycle import Actor, AppointmentStatus, Role
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, AppointmentFilters, NO_FILTERS
from ..ports.audit_logger import AuditLogger
from ..ports.directory_repo import Directory, DoctorDto
from .booking_service import BookingService
from .slot_catalog import SlotCatalog
from .status_engine import StatusTransitionEngine


@dataclass
class AppointmentsService:
    """The wire contract as one object, scoped by the caller's identity."""
    repo: AppointmentsRepository
    directory: Directory
    slots: SlotCatalog
    booking: BookingService
    transitions: StatusTransitionEngine

    def book(self, actor: Actor, doctor_id: str, scheduled_at: datetime, notes: Optional[str] = None) -> AppointmentDto:
        if actor.role != Role.PATIENT:
            raise ForbiddenError("Only patients can book appointments")
        return self.booking.book(doctor_id, actor.actor_id, scheduled_at, notes)

    def list_appointments(self, actor: Actor, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        if actor.role == Role.DOCTOR:
            return self.repo.list_by_doctor(actor.actor_id, filters)
        return self.repo.list_by_patient(actor.actor_id, filters)

    def get(self, actor: Actor, appointment_id: str) -> AppointmentDto:
        appt = self.repo.get(appointment_id)
        owner = appt.doctor_id if actor.role == Role.DOCTOR else appt.patient_id
        if owner != actor.actor_id:
            raise ForbiddenError("This appointment does not belong to you")
        return appt

    def update_status(self, actor: Actor, appointment_id: str, status: AppointmentStatus) -> AppointmentDto:
        return self.transitions.transition(actor, appointment_id, status)

    def cancel(self, actor: Actor, appointment_id: str) -> AppointmentDto:
        return self.transitions.cancel(actor, appointment_id)

    def counts(self, actor: Actor) -> Dict[str, int]:
        if actor.role == Role.DOCTOR:
            raw = self.repo.status_counts(doctor_id=actor.actor_id)
        else:
            raw = self.repo.status_counts(patient_id=actor.actor_id)
        out = {s.value: raw.get(s, 0) for s in AppointmentStatus}
        out["all"] = sum(out.values())
        return out

    def available_slots(self, doctor_id: str, day: date) -> List[time]:
        return self.slots.available_slots(doctor_id, day)

    def search_doctors(self, text: Optional[str] = None, specialization: Optional[str] = None) -> List[DoctorDto]:
        return self.directory.search_doctors(text, specialization)

    def get_doctor(self, doctor_id: str) -> DoctorDto:
        doctor = self.directory.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def specializations(self) -> List[str]:
        return self.directory.specializations()


def build_appointments_service(
    repo: AppointmentsRepository,
    directory: Directory,
    audit: Optional[AuditLogger] = None,
    clock: Callable[[], datetime] = utcnow,
    working_hours: Optional[Sequence[str]] = None,
    slot_minutes: int = 30,
) -> AppointmentsService:
    slots = SlotCatalog(repo=repo, directory=directory, default_slot_minutes=slot_minutes)
    if working_hours:
        slots.default_working_hours = list(working_hours)
    return AppointmentsService(
        repo=repo,
        directory=directory,
        slots=slots,
        booking=BookingService(repo=repo, directory=directory, slots=slots, clock=clock),
        transitions=StatusTransitionEngine(repo=repo, audit=audit),
    )
