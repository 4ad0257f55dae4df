import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from carebook.application.ports.directory_repo import DoctorDto, PatientDto
from carebook.application.services.appointments_service import build_appointments_service
from carebook.database import create_db_and_tables
from carebook.infrastructure.persistence.memory.appointments_repository_memory import InMemoryAppointmentsRepository
from carebook.infrastructure.persistence.memory.directory_memory import InMemoryDirectory

FIXED_NOW = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, actor_id, role, appointment_id=None, success=True, details=None):
        self.entries.append({
            "action": action,
            "actor_id": actor_id,
            "role": role,
            "appointment_id": appointment_id,
            "success": success,
            "details": details or {},
        })


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def directory():
    return InMemoryDirectory(
        doctors=[
            DoctorDto(id="D1", name="Dr. Ahsan Khan", email="ahsan@clinic.test", specialization="Cardiology", consultation_fee=80.0, experience_years=10),
            DoctorDto(id="D2", name="Dr. Sara Malik", email="sara@clinic.test", specialization="Neurology", consultation_fee=70.0, experience_years=7,
                      working_hours=["10:00-11:00"], slot_minutes=20),
        ],
        patients=[
            PatientDto(id="P1", name="Jane Doe", email="jane@mail.test"),
            PatientDto(id="P2", name="John Roe", email="john@mail.test"),
        ],
    )


@pytest.fixture
def repo(directory):
    return InMemoryAppointmentsRepository(directory)


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def service(repo, directory, audit, clock):
    return build_appointments_service(repo, directory, audit=audit, clock=clock)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db_session(engine):
    with Session(engine) as session:
        yield session
