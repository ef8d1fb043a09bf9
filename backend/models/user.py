"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base

PATIENT_ROLE = "patient"
PROVIDER_ROLE = "provider"


class User(Base):
    """Represents an account identity issued by the identity service."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False, default="")
    phone = Column(String)
    hashed_password = Column(String)
    role = Column(String, nullable=False)  # patient/provider
    created_at = Column(DateTime, default=datetime.now)
