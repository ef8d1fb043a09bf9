"""Patient model definitions."""

from sqlalchemy import Column, ForeignKey, Integer
from sqlalchemy.orm import relationship
from backend.database import Base


class Patient(Base):
    """A patient record, linked one-to-one to a patient account."""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    user = relationship("User")
