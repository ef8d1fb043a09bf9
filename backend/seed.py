"""Seed a demo provider and patient and print bearer tokens for them.

Usage:
    python -m backend.seed
"""
import sys
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.jwt_handler import create_access_token
from backend.core import config
from backend.database import Database
from backend.models.patient import Patient
from backend.models.provider import Provider
from backend.models.user import PATIENT_ROLE, PROVIDER_ROLE, User


def get_or_create_user(db: Session, email: str, name: str, role: str, phone: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, name=name, role=role, phone=phone, hashed_password="")
        db.add(user)
        db.flush()
    return user


def seed(db: Session) -> dict:
    doctor = get_or_create_user(db, "doctor@example.com", "Dr. John Smith", PROVIDER_ROLE, "+1234567890")
    patient_user = get_or_create_user(db, "patient@example.com", "Jane Doe", PATIENT_ROLE, "+0987654321")

    provider = db.query(Provider).filter(Provider.user_id == doctor.id).first()
    if provider is None:
        provider = Provider(
            user_id=doctor.id,
            speciality="General Medicine",
            description="Experienced general physician with focus on preventive care and comprehensive treatment",
            experience="8 years",
            appointment_fee=75,
        )
        db.add(provider)

    patient = db.query(Patient).filter(Patient.user_id == patient_user.id).first()
    if patient is None:
        patient = Patient(user_id=patient_user.id)
        db.add(patient)

    db.commit()
    return {
        "provider_id": provider.id,
        "patient_id": patient.id,
        "provider_token": create_access_token(doctor.email, role=doctor.role),
        "patient_token": create_access_token(patient_user.email, role=patient_user.role),
    }


def main() -> None:
    database = Database(config.DATABASE_URL).open()
    try:
        database.create_schema()
        db = database.session()
        try:
            seeded = seed(db)
        finally:
            db.close()
    except SQLAlchemyError as exc:
        print("Seeding failed:", exc, file=sys.stderr)
        sys.exit(1)
    finally:
        database.close()

    tomorrow = datetime.now().date() + timedelta(days=1)
    print("Seeded successfully:")
    print("Provider ID:", seeded["provider_id"])
    print("Patient ID:", seeded["patient_id"])
    print("Provider token:", seeded["provider_token"])
    print("Patient token:", seeded["patient_token"])
    print("Example booking body:", {
        "provider_id": seeded["provider_id"],
        "slot_date": tomorrow.isoformat(),
        "slot_time": f"{config.SLOT_DAILY_START_HOUR:02d}:30",
        "reason": "Regular check-up",
    })


if __name__ == "__main__":
    main()
