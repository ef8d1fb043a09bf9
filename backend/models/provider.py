"""Provider model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from backend.database import Base


class Provider(Base):
    """A bookable provider, linked one-to-one to a provider account."""
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    speciality = Column(String, nullable=False)
    experience = Column(String, default="1 Years")
    description = Column(String)
    appointment_fee = Column(Numeric(10, 2), nullable=False)

    user = relationship("User", lazy="joined")

    @property
    def name(self) -> str:
        return self.user.name if self.user else ""
