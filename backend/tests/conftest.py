"""
Test configuration and shared fixtures for the Clinic Scheduler test suite.

Uses an in-memory SQLite database. Each test gets a fresh schema, so services
can commit freely without leaking state between tests.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from typing import Generator, List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from models import AppointmentType, Clinic, Doctor, Patient, PatientPackage
from models.clinic import ClinicSettings
from services.notification_service import (
    MailMessage,
    get_mailer,
    get_queue_broadcaster,
    set_mailer,
    set_queue_broadcaster,
)
from utils.datetime_utils import clinic_now_naive


class RecordingMailer:
    """Mailer that keeps every message in memory."""

    def __init__(self):
        self.messages: List[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.messages.append(message)

    def kinds(self) -> List[str]:
        return [message.kind.value for message in self.messages]


class RecordingQueueBroadcaster:
    """Queue broadcaster that keeps every call in memory."""

    def __init__(self):
        self.calls: List[Tuple[str, int]] = []

    def hide_patient(self, clinic_id: int, appointment_id: int) -> None:
        self.calls.append(("hide_patient", appointment_id))

    def new_patient_in_queue(self, clinic_id: int, appointment_id: int) -> None:
        self.calls.append(("new_patient_in_queue", appointment_id))

    def next_patient(self, clinic_id: int, appointment_id: int) -> None:
        self.calls.append(("next_patient", appointment_id))


def upcoming_weekday(weekday: int = 0, weeks_ahead: int = 1) -> datetime:
    """Midnight of a future weekday (0=Monday), at least `weeks_ahead` weeks from today."""
    today = clinic_now_naive().date()
    days = (weekday - today.weekday()) % 7 + 7 * weeks_ahead
    day = today + timedelta(days=days)
    return datetime(day.year, day.month, day.day)


@pytest.fixture(scope="function")
def db_engine():
    """
    Create a fresh in-memory database for a test.

    StaticPool keeps a single connection so the TestClient thread sees the
    same database as the test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the test database."""
    TestingSession = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()

    yield session

    session.close()


@pytest.fixture
def client(db_session):
    """API client whose requests use the test session."""
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mailer():
    """Capture outgoing mail."""
    recorder = RecordingMailer()
    previous = get_mailer()
    set_mailer(recorder)
    yield recorder
    set_mailer(previous)


@pytest.fixture
def queue():
    """Capture waiting-room broadcasts."""
    recorder = RecordingQueueBroadcaster()
    previous = get_queue_broadcaster()
    set_queue_broadcaster(recorder)
    yield recorder
    set_queue_broadcaster(previous)


@pytest.fixture
def monday() -> datetime:
    """Midnight of next week's Monday."""
    return upcoming_weekday(0)


@pytest.fixture
def clinic(db_session) -> Clinic:
    clinic = Clinic(name="Test Clinic", settings=ClinicSettings().model_dump())
    db_session.add(clinic)
    db_session.commit()
    return clinic


@pytest.fixture
def doctor(db_session, clinic) -> Doctor:
    doctor = Doctor(clinic_id=clinic.id, full_name="Dr. House", email="house@example.com")
    db_session.add(doctor)
    db_session.commit()
    return doctor


@pytest.fixture
def referencer(db_session, clinic) -> Doctor:
    doctor = Doctor(clinic_id=clinic.id, full_name="Dr. Wilson", email="wilson@example.com")
    db_session.add(doctor)
    db_session.commit()
    return doctor


@pytest.fixture
def patient(db_session, clinic) -> Patient:
    patient = Patient(
        clinic_id=clinic.id,
        full_name="Jane Doe",
        email="jane@example.com",
        phone_number="+15550100",
    )
    db_session.add(patient)
    db_session.commit()
    return patient


@pytest.fixture
def appointment_type(db_session, clinic) -> AppointmentType:
    appointment_type = AppointmentType(clinic_id=clinic.id, name="Consultation", duration_minutes=60)
    db_session.add(appointment_type)
    db_session.commit()
    return appointment_type


@pytest.fixture
def patient_package(db_session, clinic, patient) -> PatientPackage:
    package = PatientPackage(clinic_id=clinic.id, patient_id=patient.id, name="Physio x10")
    db_session.add(package)
    db_session.commit()
    return package


@pytest.fixture
def update_settings(db_session, clinic):
    """Change scheduling settings of the test clinic, e.g. update_settings(work_on_sunday_enabled=True)."""
    def _update(**scheduling):
        settings = clinic.get_validated_settings()
        for name, value in scheduling.items():
            if hasattr(settings.scheduling_settings, name):
                setattr(settings.scheduling_settings, name, value)
            else:
                setattr(settings.notification_settings, name, value)
        clinic.set_validated_settings(settings)
        db_session.commit()
        return settings
    return _update


@pytest.fixture
def book(db_session, clinic, doctor, patient, appointment_type):
    """Book an appointment through the service with sensible defaults."""
    from services import AppointmentService

    def _book(start_time: datetime, end_time: datetime = None, **kwargs):
        kwargs.setdefault("patient_id", patient.id)
        kwargs.setdefault("doctor_id", doctor.id)
        kwargs.setdefault("appointment_type_id", appointment_type.id)
        return AppointmentService.create_appointment(
            db_session,
            clinic.id,
            start_time=start_time,
            end_time=end_time or start_time + timedelta(hours=1),
            **kwargs,
        )
    return _book
