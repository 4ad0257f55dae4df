from sqlmodel import SQLModel, create_engine, Session, select
import logging
from .config import settings
from .db.models import Doctor, Patient

logger = logging.getLogger(__name__)

# Choose engine options based on database scheme
db_url = settings.DATABASE_URL
engine_kwargs = {}

if db_url.startswith("sqlite"):
    # SQLite specific connect args
    engine_kwargs.update({
        "connect_args": {"check_same_thread": False}
    })
else:
    # Better resiliency for managed Postgres
    engine_kwargs.update({
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
    })

engine = create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)

# Sample practice used by the web client's patient dashboard
SAMPLE_DOCTORS = [
    {"name": "Dr. Ahsan Khan", "email": "ahsan.khan@carebook.test", "specialization": "Cardiology", "experience_years": 10, "consultation_fee": 80.0},
    {"name": "Dr. Sara Malik", "email": "sara.malik@carebook.test", "specialization": "Neurology", "experience_years": 7, "consultation_fee": 70.0},
    {"name": "Dr. Imran Ali", "email": "imran.ali@carebook.test", "specialization": "Orthopedics", "experience_years": 12, "consultation_fee": 90.0},
    {"name": "Dr. Zainab Fatima", "email": "zainab.fatima@carebook.test", "specialization": "Dermatology", "experience_years": 5, "consultation_fee": 60.0},
]

def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)

def seed_sample_data(session: Session) -> int:
    """Insert the sample doctors when the directory is empty. Returns rows added."""
    if session.exec(select(Doctor)).first():
        return 0
    for row in SAMPLE_DOCTORS:
        session.add(Doctor(**row))
    session.add(Patient(name="Jane Doe", email="jane.doe@carebook.test", phone="+1 (555) 123-4567"))
    session.commit()
    logger.info(f"Seeded {len(SAMPLE_DOCTORS)} sample doctors")
    return len(SAMPLE_DOCTORS)

def get_session():
    with Session(engine) as session:
        yield session
