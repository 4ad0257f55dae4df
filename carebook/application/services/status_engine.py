from dataclasses import dataclass, field
from typing import Optional
import logging

from ...exceptions import AppointmentError, ForbiddenError, InvalidTransitionError
from ..lifecycle import Actor, AppointmentStatus, Role, can_transition, roles_for_target
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ..ports.audit_logger import AuditLogger

logger = logging.getLogger(__name__)


def _is_participant(actor: Actor, appt: AppointmentDto) -> bool:
    if actor.role == Role.DOCTOR:
        return appt.doctor_id == actor.actor_id
    return appt.patient_id == actor.actor_id


@dataclass
class StatusTransitionEngine:
    repo: AppointmentsRepository
    audit: Optional[AuditLogger] = field(default=None)

    def transition(self, actor: Actor, appointment_id: str, requested: AppointmentStatus) -> AppointmentDto:
        requested = AppointmentStatus(requested)
        try:
            appt = self.repo.get(appointment_id)
            if not _is_participant(actor, appt):
                raise ForbiddenError("This appointment does not belong to you")

            # Role check comes before the table so a patient asking for
            # "confirmed" is told it is forbidden, not that it is invalid.
            allowed = roles_for_target(requested)
            if allowed and actor.role not in allowed:
                raise ForbiddenError(f"A {actor.role.value} cannot mark an appointment as {requested.value}")

            if not can_transition(appt.status, requested):
                raise InvalidTransitionError(
                    f"Cannot change an appointment from {appt.status.value} to {requested.value}"
                )

            updated = self.repo.update_status(appointment_id, requested, expected_status=appt.status)
        except AppointmentError as e:
            self._audit(actor, appointment_id, requested, success=False, reason=e.kind)
            raise

        self._audit(actor, appointment_id, requested, success=True, previous=appt.status.value)
        logger.info(f"Appointment {appointment_id}: {appt.status.value} -> {updated.status.value} by {actor.role.value}")
        return updated

    def cancel(self, actor: Actor, appointment_id: str) -> AppointmentDto:
        return self.transition(actor, appointment_id, AppointmentStatus.CANCELLED)

    def _audit(self, actor: Actor, appointment_id: str, requested: AppointmentStatus, success: bool, **details) -> None:
        if not self.audit:
            return
        details["requested"] = requested.value
        self.audit.log(
            "appointment.status",
            actor_id=actor.actor_id,
            role=actor.role.value,
            appointment_id=appointment_id,
            success=success,
            details=details,
        )
