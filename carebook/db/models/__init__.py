# Models package (re-export feature modules for stable imports)
from .users.patient import Patient
from .health.appointment import Appointment
from .health.doctor import Doctor

__all__ = [
    "Patient",
    "Appointment",
    "Doctor",
]
