"""Provider slot model definitions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, text
from sqlalchemy.orm import relationship
from backend.database import Base


class ProviderSlot(Base):
    """A booked (or released) grid interval owned by one provider."""
    __tablename__ = "provider_slots"
    __table_args__ = (
        # At most one booked slot per provider and start time.
        Index(
            "uq_provider_slots_booked_start",
            "provider_id",
            "start_time",
            unique=True,
            sqlite_where=text("is_booked"),
            postgresql_where=text("is_booked"),
        ),
        Index("idx_provider_slots_provider_start", "provider_id", "start_time"),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)

    provider = relationship("Provider")
