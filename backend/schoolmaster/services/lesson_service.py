# backend/schoolmaster/services/lesson_service.py
"""
Lesson Service for the SchoolMaster platform.

Handles lesson operations after materialization: direct booking, tutor
confirmation, cancellation and rescheduling with time-based fees, and
completion with its reward side effects.

Fee tiers use the exact fractional number of hours until the lesson:

    cancel      <= 2h   student fee 50%, tutor payout reduction 30%
                <= 24h  student fee 25%, tutor payout reduction 15%
                else    nothing
    reschedule  <= 2h   student fee 25%, tutor payout reduction 15%
                else    nothing
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
import secrets
import string
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ActorSide, PaymentMethod, PaymentStatus
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, hours_until, parse_client_datetime, utc_now
from ..models.balance import BalanceTransactionType
from ..models.lesson import Lesson, LessonStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .availability_service import AvailabilityService
from .balance_service import BalanceService, to_money
from .base import BaseService
from .invitation_service import PENDING_INVITATIONS_MESSAGE
from .notification_service import NotificationService
from .progression_service import ProgressionService
from .rewards_service import RewardsService

logger = logging.getLogger(__name__)

TOPIC_COMPLETED_MESSAGE = "Temat ukończony pomyślnie"
RESCHEDULE_FEE_DESCRIPTION = "Opłata za przełożenie lekcji"


@dataclass(frozen=True)
class FeeTier:
    max_hours: float
    student_rate: Decimal
    tutor_rate: Decimal


CANCELLATION_TIERS = (
    FeeTier(2, Decimal("0.50"), Decimal("0.30")),
    FeeTier(24, Decimal("0.25"), Decimal("0.15")),
)
RESCHEDULE_TIERS = (FeeTier(2, Decimal("0.25"), Decimal("0.15")),)


def fee_rates(hours_before: float, tiers=CANCELLATION_TIERS) -> tuple:
    """(student_rate, tutor_rate) for a change made ``hours_before`` the lesson."""
    for tier in tiers:
        if hours_before <= tier.max_hours:
            return tier.student_rate, tier.tutor_rate
    return Decimal("0"), Decimal("0")


def generate_meet_link() -> str:
    letters = string.ascii_lowercase
    parts = ["".join(secrets.choice(letters) for _ in range(size)) for size in (3, 4, 3)]
    return "https://meet.google.com/" + "-".join(parts)


class LessonService(BaseService):
    """Lesson lifecycle after an invitation was accepted or a direct booking made."""

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        availability_service: Optional[AvailabilityService] = None,
        balance_service: Optional[BalanceService] = None,
        progression_service: Optional[ProgressionService] = None,
        rewards_service: Optional[RewardsService] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.balance_service = balance_service or BalanceService(db)
        self.progression_service = progression_service or ProgressionService(db)
        self.rewards_service = rewards_service or RewardsService(db, self.balance_service)

        self.repository = RepositoryFactory.create_lesson_repository(db)
        self.invitation_repository = RepositoryFactory.create_invitation_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def get_lesson(self, lesson_id: str) -> Lesson:
        lesson = self.repository.get_by_id(lesson_id)
        if not lesson:
            raise NotFoundException("Nie znaleziono lekcji", code="LESSON_NOT_FOUND")
        return lesson

    @BaseService.measure_operation("book_direct")
    def book_direct(
        self,
        student: User,
        tutor_id: Optional[str],
        topic_id: Optional[str],
        scheduled_at: Union[str, datetime, None],
        now: Optional[datetime] = None,
    ) -> Lesson:
        """
        Book a tutor directly, paying from balance.

        The lesson starts ``pending`` until the tutor confirms it.
        """
        if not student.is_student:
            raise ForbiddenException("Tylko uczniowie mogą rezerwować lekcje")
        now = ensure_utc(now) if now else utc_now()
        if not tutor_id or not scheduled_at:
            raise ValidationException("Brakujące wymagane pola", code="MISSING_FIELDS")
        when = self._parse_time(scheduled_at)
        if when <= now:
            raise ValidationException(
                "Nie można zarezerwować lekcji w przeszłości", code="TIME_IN_PAST"
            )

        tutor = self.user_repository.get_by_id(tutor_id)
        if not tutor or not tutor.is_tutor or not tutor.is_active:
            raise NotFoundException("Nie znaleziono korepetytora")

        topic = self.progression_service.resolve_topic(student.id, topic_id)
        self.progression_service.ensure_bookable(student.id, topic)
        if self.invitation_repository.get_pending_for_student_topic(
            student.id, topic.id if topic else None
        ):
            raise BusinessRuleException(PENDING_INVITATIONS_MESSAGE, code="PENDING_INVITATIONS_EXIST")
        if not self.availability_service.is_slot_in_template(tutor.id, when):
            raise BusinessRuleException(
                "Korepetytor nie jest dostępny w wybranym terminie", code="TUTOR_UNAVAILABLE"
            )

        title = topic.name if topic else "Lekcja matematyki"
        price = settings.lesson_price
        with self.transaction():
            lesson = self.repository.insert_active(
                student_id=student.id,
                tutor_id=tutor.id,
                topic_id=topic.id if topic else None,
                title=title,
                scheduled_at=when,
                status=LessonStatus.PENDING.value,
                price=price,
                payment_method=PaymentMethod.BALANCE.value,
                payment_status=PaymentStatus.PAID.value,
                meet_link=generate_meet_link(),
            )
            if lesson is None:
                raise BookingConflictException(details={"scheduledAt": when.isoformat()})
            self.balance_service.debit(
                student.id,
                price,
                BalanceTransactionType.PAYMENT,
                f"Płatność za lekcję - {title}",
                lesson_id=lesson.id,
            )
            self.progression_service.mark_in_progress(student.id, lesson.topic_id)

        self.log_operation("book_direct", lesson_id=lesson.id, student_id=student.id, tutor_id=tutor.id)
        return lesson

    @BaseService.measure_operation("confirm_lesson")
    def confirm(self, lesson_id: str, tutor: User) -> Lesson:
        lesson = self.get_lesson(lesson_id)
        if lesson.tutor_id != tutor.id:
            raise ForbiddenException("Tylko przypisany korepetytor może potwierdzić lekcję")
        with self.transaction():
            lesson.confirm()
        self.log_operation("confirm_lesson", lesson_id=lesson.id)
        return lesson

    @BaseService.measure_operation("cancel_lesson")
    def cancel(
        self,
        lesson_id: str,
        actor: User,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Cancel a pending or scheduled lesson.

        A student pays a fee depending on notice and gets the rest back to
        their balance; a tutor cancellation refunds the student in full and
        records a payout reduction for the tutor.

        Returns:
            {"lesson", "cancellation_fee", "refund_amount", "payout_reduction"}
        """
        lesson = self.get_lesson(lesson_id)
        if not lesson.is_participant(actor.id):
            raise ForbiddenException("Nie możesz anulować tej lekcji")

        side = ActorSide.STUDENT if actor.id == lesson.student_id else ActorSide.TUTOR
        hours_before = hours_until(lesson.scheduled_at, now)
        student_rate, tutor_rate = fee_rates(hours_before, CANCELLATION_TIERS)
        price = to_money(lesson.price)

        if side == ActorSide.STUDENT:
            fee = to_money(price * student_rate)
            payout_reduction = Decimal("0.00")
        else:
            fee = Decimal("0.00")
            payout_reduction = to_money(price * tutor_rate)

        refund_amount = Decimal("0.00")
        previous_time = lesson.scheduled_at
        with self.transaction():
            was_paid = lesson.payment_status == PaymentStatus.PAID
            lesson.cancel(actor.id, reason, fee=fee, payout_reduction=payout_reduction)

            if was_paid:
                refund_amount = price - fee
                if refund_amount > 0:
                    self.balance_service.credit(
                        lesson.student_id,
                        refund_amount,
                        BalanceTransactionType.REFUND,
                        f"Zwrot za anulowaną lekcję - {lesson.title}",
                        lesson_id=lesson.id,
                    )
                lesson.payment_status = (
                    PaymentStatus.REFUNDED.value
                    if refund_amount == price
                    else PaymentStatus.PARTIALLY_REFUNDED.value
                )

            self.progression_service.revert_to_available(lesson.student_id, lesson.topic_id)
            self.repository.add_action(
                lesson_id=lesson.id,
                action_type="cancel",
                initiated_by=side.value,
                actor_id=actor.id,
                reason=reason,
                previous_scheduled_at=previous_time,
                fee_amount=fee if side == ActorSide.STUDENT else payout_reduction,
            )

        self.log_operation(
            "cancel_lesson",
            lesson_id=lesson.id,
            initiated_by=side.value,
            hours_before=round(hours_before, 2),
            fee=str(fee),
        )
        self.notification_service.notify_lesson_cancelled(lesson, actor)
        return {
            "lesson": lesson,
            "cancellation_fee": fee,
            "refund_amount": refund_amount,
            "payout_reduction": payout_reduction,
        }

    @BaseService.measure_operation("reschedule_lesson")
    def reschedule(
        self,
        lesson_id: str,
        new_time: Union[str, datetime],
        actor: User,
        reason: Optional[str] = None,
        initiated_by: Optional[ActorSide] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Move a scheduled lesson to a new slot.

        Returns:
            {"lesson", "fee", "payout_reduction"}
        """
        lesson = self.get_lesson(lesson_id)
        if not (lesson.is_participant(actor.id) or actor.is_admin):
            raise ForbiddenException("Nie możesz przełożyć tej lekcji")
        if (lesson.reschedule_count or 0) >= settings.reschedule_limit:
            raise BusinessRuleException(
                f"Maximum reschedule limit reached ({settings.reschedule_limit})",
                code="RESCHEDULE_LIMIT_REACHED",
            )

        now = ensure_utc(now) if now else utc_now()
        when = self._parse_time(new_time)
        if when <= now:
            raise ValidationException("Nowy termin musi być w przyszłości", code="TIME_IN_PAST")

        occupant = self.repository.get_active_for_tutor_at(lesson.tutor_id, when)
        if occupant is not None and occupant.id != lesson.id:
            raise BookingConflictException(details={"scheduledAt": when.isoformat()})

        if actor.id == lesson.student_id:
            actor_side = ActorSide.STUDENT
        elif actor.id == lesson.tutor_id:
            actor_side = ActorSide.TUTOR
        else:
            actor_side = ActorSide.ADMIN
        if initiated_by is None:
            initiated_by = actor_side
        elif initiated_by != actor_side and not actor.is_admin:
            raise ForbiddenException(
                "Nie możesz przełożyć lekcji w imieniu drugiej strony", code="INVALID_INITIATOR"
            )

        hours_before = hours_until(lesson.scheduled_at, now)
        student_rate, tutor_rate = fee_rates(hours_before, RESCHEDULE_TIERS)
        price = to_money(lesson.price)
        fee = Decimal("0.00")
        payout_reduction = Decimal("0.00")
        if initiated_by == ActorSide.STUDENT:
            fee = to_money(price * student_rate)
        elif initiated_by == ActorSide.TUTOR:
            payout_reduction = to_money(price * tutor_rate)

        previous_time = lesson.scheduled_at
        with self.transaction():
            lesson.reschedule(when, payout_reduction=payout_reduction)
            if not self.repository.move_active(lesson):
                raise BookingConflictException(details={"scheduledAt": when.isoformat()})

            charged = Decimal("0.00")
            if fee > 0:
                # Balance is floored at zero; only what is available is taken
                entry = self.balance_service.debit(
                    lesson.student_id,
                    fee,
                    BalanceTransactionType.WITHDRAWAL,
                    RESCHEDULE_FEE_DESCRIPTION,
                    allow_partial=True,
                    lesson_id=lesson.id,
                )
                charged = -entry.amount if entry else Decimal("0.00")

            self.repository.add_action(
                lesson_id=lesson.id,
                action_type="reschedule",
                initiated_by=initiated_by.value,
                actor_id=actor.id,
                reason=reason,
                previous_scheduled_at=previous_time,
                new_scheduled_at=when,
                fee_amount=charged if initiated_by == ActorSide.STUDENT else payout_reduction,
            )

        self.log_operation(
            "reschedule_lesson",
            lesson_id=lesson.id,
            initiated_by=initiated_by.value,
            reschedule_count=lesson.reschedule_count,
        )
        return {"lesson": lesson, "fee": charged, "payout_reduction": payout_reduction}

    @BaseService.measure_operation("complete_lesson")
    def complete(
        self,
        lesson_id: str,
        tutor: User,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Complete a scheduled lesson and apply its rewards.

        Side effects, all in one transaction: student lesson counter and
        loyalty level, first-completion topic XP, next topic unlocked, tutor
        lesson counter, pending referral confirmed.
        """
        lesson = self.get_lesson(lesson_id)
        if lesson.tutor_id != tutor.id:
            raise ForbiddenException("Tylko przypisany korepetytor może zakończyć lekcję")
        if rating is not None and not 1 <= rating <= 5:
            raise ValidationException("Ocena musi być w zakresie 1-5", code="INVALID_RATING")

        with self.transaction():
            lesson.complete(rating=rating, feedback=feedback)
            student = self.user_repository.get_by_id(lesson.student_id)
            loyalty = self.rewards_service.record_completed_lesson(student)
            xp_awarded = self.progression_service.complete_topic(student, lesson.topic_id)

            tutor_row = self.user_repository.get_by_id(lesson.tutor_id)
            tutor_row.total_lessons = (tutor_row.total_lessons or 0) + 1

            referral = self.rewards_service.confirm_referral(student)

        if referral is not None:
            referrer = self.user_repository.get_by_id(referral.referrer_id)
            if referrer is not None:
                self.notification_service.notify_referral_bonus(
                    referrer, student, referral.bonus_amount
                )

        self.log_operation(
            "complete_lesson", lesson_id=lesson.id, xp_awarded=xp_awarded, loyalty_level=loyalty.level
        )
        return {
            "message": TOPIC_COMPLETED_MESSAGE,
            "lesson": lesson,
            "xp_awarded": xp_awarded,
            "loyalty_level": loyalty.level,
            "loyalty_level_name": loyalty.name,
            "referral_confirmed": referral is not None,
        }

    @staticmethod
    def _parse_time(value: Union[str, datetime]) -> datetime:
        if isinstance(value, datetime):
            return ensure_utc(value)
        parsed = parse_client_datetime(value)
        if parsed is None:
            raise ValidationException("Nieprawidłowy format daty", code="INVALID_DATE")
        return parsed
