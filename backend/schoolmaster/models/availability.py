# backend/schoolmaster/models/availability.py
"""
Weekly availability template for tutors.

A row says "tutor T teaches on weekday D at hour H" and applies to every
future week. There are no date-specific exceptions; a slot is free on a
given date unless an active lesson already occupies it.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base


class TutorAvailabilitySlot(Base):
    """One hour of a tutor's recurring week."""

    __tablename__ = "tutor_hourly_availability"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday
    hour = Column(String(5), nullable=False)  # "HH:00"
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("tutor_id", "day_of_week", "hour", name="uq_tutor_availability_slot"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_day_of_week"),
    )

    def __repr__(self) -> str:
        return (
            f"<TutorAvailabilitySlot {self.tutor_id}: day={self.day_of_week} "
            f"hour={self.hour} available={self.is_available}>"
        )
