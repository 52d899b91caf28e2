# backend/schoolmaster/models/user.py
"""
User model for the SchoolMaster platform.

Students, tutors and admins share one table, differentiated by ``role``.
Accounts are never hard-deleted; ``is_active`` is the soft-deactivation flag.

Monetary counters:
    balance: main wallet, cached running total of the balance ledger
    loyalty_balance: credited on loyalty level-ups
    referral_balance: credited when a referred student completes a lesson
"""

from decimal import Decimal
import logging
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..core.enums import RoleName
from ..database import Base
from .base_enum import status_values

logger = logging.getLogger(__name__)


class User(Base):
    """
    Main user model for authentication, role and wallet state.

    Tutor-specific columns (hourly_rate, rating, total_lessons, gender,
    teaching_style) are nullable for students and admins.
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default=RoleName.STUDENT.value, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Wallet
    balance = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    loyalty_balance = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    referral_balance = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    # Gamification
    xp = Column(Integer, nullable=False, default=0)
    completed_lessons_count = Column(Integer, nullable=False, default=0)
    loyalty_level = Column(Integer, nullable=False, default=1)

    # Tutor profile
    gender = Column(String(20), nullable=True)
    teaching_style = Column(String(20), nullable=True)
    hourly_rate = Column(Numeric(8, 2), nullable=True)
    rating = Column(Numeric(3, 2), nullable=True)
    total_lessons = Column(Integer, nullable=False, default=0)

    last_email_notification_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(f"role IN ({status_values(RoleName)})", name="ck_users_role"),
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint("loyalty_level BETWEEN 1 AND 5", name="ck_users_loyalty_level"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        for column, default in (
            ("balance", Decimal("0.00")),
            ("loyalty_balance", Decimal("0.00")),
            ("referral_balance", Decimal("0.00")),
            ("xp", 0),
            ("completed_lessons_count", 0),
            ("loyalty_level", 1),
            ("total_lessons", 0),
        ):
            if getattr(self, column) is None:
                setattr(self, column, default)
        if self.is_active is None:
            self.is_active = True
        if not self.role:
            self.role = RoleName.STUDENT.value

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} ({self.role})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_student(self) -> bool:
        return self.role == RoleName.STUDENT

    @property
    def is_tutor(self) -> bool:
        return self.role == RoleName.TUTOR

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN
