from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Sequence, Tuple

from ...exceptions import NotFoundError
from ...utils import to_utc
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.directory_repo import Directory, DoctorDto

Window = Tuple[time, time]


def parse_window(value: str) -> Window:
    """Parse ``"HH:MM-HH:MM"`` into a half-open ``(start, end)`` pair."""
    try:
        start_s, end_s = value.split("-")
        start = datetime.strptime(start_s.strip(), "%H:%M").time()
        end = datetime.strptime(end_s.strip(), "%H:%M").time()
    except ValueError:
        raise ValueError(f"Invalid working hours window {value!r}. Use HH:MM-HH:MM")
    if end <= start:
        raise ValueError(f"Invalid working hours window {value!r}: end must be after start")
    return start, end


def expand_windows(windows: Sequence[Window], slot_minutes: int) -> List[time]:
    """Slot start times of every window, ascending and de-duplicated."""
    if slot_minutes <= 0:
        raise ValueError("Slot duration must be positive")
    step = timedelta(minutes=slot_minutes)
    starts = set()
    anchor = date(2000, 1, 1)
    for start, end in windows:
        cursor = datetime.combine(anchor, start)
        limit = datetime.combine(anchor, end)
        while cursor + step <= limit:
            starts.add(cursor.time())
            cursor += step
    return sorted(starts)


@dataclass
class SlotCatalog:
    """Derives bookable slots from a doctor's template and the store.

    Holds no state of its own; every call reads the store again.
    """
    repo: AppointmentsRepository
    directory: Directory
    default_working_hours: Sequence[str] = field(default_factory=lambda: ["09:00-12:00", "14:00-17:30"])
    default_slot_minutes: int = 30

    def _doctor(self, doctor_id: str) -> DoctorDto:
        doctor = self.directory.get_doctor(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def template_slots(self, doctor: DoctorDto) -> List[time]:
        windows = [parse_window(w) for w in (doctor.working_hours or self.default_working_hours)]
        return expand_windows(windows, doctor.slot_minutes or self.default_slot_minutes)

    def available_slots(self, doctor_id: str, day: date) -> List[time]:
        doctor = self._doctor(doctor_id)
        held = {to_utc(t).time() for t in self.repo.held_times(doctor_id, day)}
        return [t for t in self.template_slots(doctor) if t not in held]

    def is_bookable(self, doctor_id: str, scheduled_at: datetime) -> bool:
        scheduled_at = to_utc(scheduled_at)
        if scheduled_at.second or scheduled_at.microsecond:
            return False
        return scheduled_at.time() in self.available_slots(doctor_id, scheduled_at.date())
