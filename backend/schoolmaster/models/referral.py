# backend/schoolmaster/models/referral.py
"""Referral between an existing user and a student they invited."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .base_enum import status_values


class ReferralStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class Referral(Base):
    """
    A referral pays ``bonus_amount`` to the referrer once, when the referred
    student completes their first lesson.
    """

    __tablename__ = "referrals"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    referrer_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    referred_id = Column(String(26), ForeignKey("users.id"), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=ReferralStatus.PENDING.value)
    bonus_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("20.00"))
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    referrer = relationship("User", foreign_keys=[referrer_id])
    referred = relationship("User", foreign_keys=[referred_id])

    __table_args__ = (
        CheckConstraint(
            f"status IN ({status_values(ReferralStatus)})", name="ck_referrals_status"
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = ReferralStatus.PENDING.value
        if self.bonus_amount is None:
            self.bonus_amount = Decimal("20.00")
