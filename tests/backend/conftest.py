import os

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Database  # noqa: E402
from backend.models.patient import Patient  # noqa: E402
from backend.models.provider import Provider  # noqa: E402
from backend.models.user import PATIENT_ROLE, PROVIDER_ROLE, User  # noqa: E402
from backend.scheduling.slot_template import SlotTemplate  # noqa: E402


@pytest.fixture
def database(tmp_path):
    database = Database(f'sqlite:///{tmp_path / "scheduling.db"}').open()
    database.create_schema()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def template() -> SlotTemplate:
    return SlotTemplate(daily_start_hour=10, daily_end_hour=21, interval_minutes=30, lookahead_days=5)


@pytest.fixture
def make_provider(db):
    def factory(email: str = 'doctor@example.com', name: str = 'Dr. John Smith', role: str = PROVIDER_ROLE) -> Provider:
        user = User(email=email, name=name, role=role, hashed_password='')
        db.add(user)
        db.flush()
        provider = Provider(
            user_id=user.id,
            speciality='General Medicine',
            experience='8 years',
            description='General physician.',
            appointment_fee=75,
        )
        db.add(provider)
        db.commit()
        db.refresh(provider)
        return provider

    return factory


@pytest.fixture
def make_patient(db):
    def factory(email: str = 'patient@example.com', name: str = 'Jane Doe') -> Patient:
        user = User(email=email, name=name, role=PATIENT_ROLE, hashed_password='')
        db.add(user)
        db.flush()
        patient = Patient(user_id=user.id)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return factory


@pytest.fixture
def provider(make_provider) -> Provider:
    return make_provider()


@pytest.fixture
def patient(make_patient) -> Patient:
    return make_patient()
