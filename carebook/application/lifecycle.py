"""Appointment lifecycle: statuses, roles and the transition table.

Every place that needs to know whether a status change is legal asks this
module. Nothing else in the code base compares status strings.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Tuple


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: Role


TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
)

# Statuses that still hold a slot on the doctor's calendar
ACTIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED}
)

_BOTH = frozenset({Role.DOCTOR, Role.PATIENT})

TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus], FrozenSet[Role]] = {
    (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED): frozenset({Role.DOCTOR}),
    (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED): _BOTH,
    (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED): frozenset({Role.DOCTOR}),
    (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED): _BOTH,
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return (AppointmentStatus(current), AppointmentStatus(target)) in TRANSITIONS


def roles_for_target(target: AppointmentStatus) -> FrozenSet[Role]:
    """Roles allowed to request ``target`` on at least one edge of the table."""
    target = AppointmentStatus(target)
    roles = set()
    for (_, to), allowed in TRANSITIONS.items():
        if to == target:
            roles.update(allowed)
    return frozenset(roles)


def next_statuses(current: AppointmentStatus, role: Role) -> Tuple[AppointmentStatus, ...]:
    """Statuses ``role`` may move an appointment to from ``current``.

    Used by clients to decide which actions to offer.
    """
    current = AppointmentStatus(current)
    return tuple(
        to for (frm, to), allowed in TRANSITIONS.items()
        if frm == current and role in allowed
    )
