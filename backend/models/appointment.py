"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from backend.database import Base

BOOKED_STATUS = "booked"
CANCELLED_STATUS = "cancelled"


class Appointment(Base):
    """Represents a patient's appointment in one provider slot."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    slot_id = Column(Integer, ForeignKey("provider_slots.id"), unique=True, nullable=False)
    status = Column(String, nullable=False, default=BOOKED_STATUS)
    reason = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    slot = relationship("ProviderSlot")
    provider = relationship("Provider")
    patient = relationship("Patient")
