from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional
import logging

from ...exceptions import NotFoundError, PastDateError, SlotUnavailableError
from ...utils import to_utc, utcnow
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, NewAppointment
from ..ports.directory_repo import Directory
from .slot_catalog import SlotCatalog

logger = logging.getLogger(__name__)


@dataclass
class BookingService:
    repo: AppointmentsRepository
    directory: Directory
    slots: SlotCatalog
    clock: Callable[[], datetime] = field(default=utcnow)

    def book(self, doctor_id: str, patient_id: str, scheduled_at: datetime, notes: Optional[str] = None) -> AppointmentDto:
        """Validate a booking request and create a ``pending`` appointment.

        Checks run in a fixed order and the first failure is raised as is:
        past date, unknown doctor or patient, slot not offered, and finally
        the store's own uniqueness check, which wins any race that slipped
        past the slot check.
        """
        scheduled_at = to_utc(scheduled_at)
        if scheduled_at <= to_utc(self.clock()):
            raise PastDateError()

        doctor = self.directory.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        if not self.directory.get_patient(patient_id):
            raise NotFoundError("Patient not found")

        if not self.slots.is_bookable(doctor_id, scheduled_at):
            raise SlotUnavailableError(
                f"{scheduled_at.strftime('%Y-%m-%d %H:%M')} is not an available slot for this doctor"
            )

        if notes is not None:
            notes = notes.strip() or None

        appt = self.repo.create(
            NewAppointment(
                doctor_id=doctor_id,
                patient_id=patient_id,
                scheduled_at=scheduled_at,
                consultation_fee=doctor.consultation_fee,
                notes=notes,
            )
        )
        logger.info(f"Booked appointment {appt.id} with doctor {doctor_id} at {scheduled_at.isoformat()}")
        return appt
