# backend/schoolmaster/models/matching.py
"""Student preferences used to rank tutors."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..core.constants import NO_PREFERENCE
from ..database import Base


class StudentMatchingPreference(Base):
    __tablename__ = "student_matching_preferences"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    preferred_days = Column(JSON, nullable=False, default=list)  # weekday ints, 0=Sunday
    preferred_start_hour = Column(Integer, nullable=False, default=16)
    preferred_end_hour = Column(Integer, nullable=False, default=20)
    tutor_gender_preference = Column(String(20), nullable=False, default=NO_PREFERENCE)
    teaching_style_preference = Column(String(20), nullable=False, default=NO_PREFERENCE)
    max_hourly_rate = Column(Numeric(8, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
