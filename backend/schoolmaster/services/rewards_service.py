# backend/schoolmaster/services/rewards_service.py
"""
Loyalty and referral rewards granted when a student completes a lesson.

Loyalty levels follow completed_lessons_count:

    >= 100  level 5  VIP           bonus 100.00
    >= 60   level 4  Premium
    >= 30   level 3  Zaangażowany  bonus 10.00
    >= 10   level 2  Stały Klient
    else    level 1  Nowy

A level's bonus is credited to loyalty_balance once, when the level is reached.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.balance import BalanceAccount, BalanceTransactionType
from ..models.referral import Referral, ReferralStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .balance_service import BalanceService
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoyaltyLevel:
    level: int
    name: str
    min_lessons: int
    bonus: Decimal


LOYALTY_LEVELS = (
    LoyaltyLevel(5, "VIP", 100, Decimal("100.00")),
    LoyaltyLevel(4, "Premium", 60, Decimal("0.00")),
    LoyaltyLevel(3, "Zaangażowany", 30, Decimal("10.00")),
    LoyaltyLevel(2, "Stały Klient", 10, Decimal("0.00")),
    LoyaltyLevel(1, "Nowy", 0, Decimal("0.00")),
)


def loyalty_level_for(completed_lessons: int) -> LoyaltyLevel:
    for level in LOYALTY_LEVELS:
        if completed_lessons >= level.min_lessons:
            return level
    return LOYALTY_LEVELS[-1]


class RewardsService(BaseService):
    def __init__(self, db: Session, balance_service: Optional[BalanceService] = None):
        super().__init__(db)
        self.balance_service = balance_service or BalanceService(db)
        self.referral_repository = RepositoryFactory.create_referral_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("record_completed_lesson")
    def record_completed_lesson(self, student: User) -> LoyaltyLevel:
        """Bump the lesson counter and apply any loyalty level-up."""
        student.completed_lessons_count = (student.completed_lessons_count or 0) + 1
        new_level = loyalty_level_for(student.completed_lessons_count)

        if new_level.level > (student.loyalty_level or 1):
            student.loyalty_level = new_level.level
            self.log_operation(
                "loyalty_level_up", student_id=student.id, level=new_level.level
            )
            if new_level.bonus > 0:
                self.balance_service.credit(
                    student.id,
                    new_level.bonus,
                    BalanceTransactionType.LOYALTY_BONUS,
                    f"Bonus lojalnościowy - poziom {new_level.name}",
                    account=BalanceAccount.LOYALTY,
                )
        return new_level

    @BaseService.measure_operation("confirm_referral")
    def confirm_referral(self, referred: User) -> Optional[Referral]:
        """
        Confirm a pending referral for this student and pay the referrer.

        Returns:
            The confirmed referral, or None when there was nothing to confirm
        """
        referral = self.referral_repository.get_pending_for_referred(referred.id)
        if referral is None:
            return None

        claimed = self.referral_repository.claim_status(
            referral.id,
            ReferralStatus.PENDING.value,
            ReferralStatus.CONFIRMED.value,
            confirmed_at=datetime.now(timezone.utc),
        )
        if not claimed:
            return None

        self.balance_service.credit(
            referral.referrer_id,
            referral.bonus_amount,
            BalanceTransactionType.REFERRAL_BONUS,
            f"Bonus za polecenie - {referred.full_name}",
            account=BalanceAccount.REFERRAL,
        )
        self.log_operation(
            "referral_confirmed", referral_id=referral.id, referrer_id=referral.referrer_id
        )
        return referral
