# backend/schoolmaster/services/invitation_service.py
"""
Invitation Service for the SchoolMaster platform.

Handles the invitation lifecycle:
    create   - gate the topic, place the payment hold, persist a pending invitation
    respond  - tutor accepts (capture + lesson) or rejects (release hold)
    cancel   - student withdraws a pending invitation
    expire   - background sweep for invitations nobody answered

Every terminal transition is a conditional ``UPDATE ... WHERE status =
'pending'``; the caller that wins the claim is the only one that touches
the money.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import DAY_NAMES_PL
from ..core.enums import PaymentMethod, PaymentStatus
from ..core.exceptions import (
    AvailabilityConflictException,
    BookingConflictException,
    BusinessRuleException,
    ConflictException,
    DomainException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, hours_until, local_slot, parse_client_datetime, utc_now
from ..models.balance import BalanceTransactionType
from ..models.base_enum import validate_transition
from ..models.invitation import INVITATION_TRANSITIONS, InvitationStatus, LessonInvitation
from ..models.lesson import Lesson, LessonStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .availability_service import AvailabilityService
from .balance_service import BalanceService
from .base import BaseService
from .notification_service import NotificationService, format_lesson_time
from .payment_service import PaymentService
from .progression_service import ProgressionService

logger = logging.getLogger(__name__)

INVITATION_SENT_MESSAGE = "Zaproszenie zostało wysłane do korepetytora"
INVITATION_NOT_FOUND_MESSAGE = "Invitation not found or already responded"
PENDING_INVITATIONS_MESSAGE = (
    "Masz już wysłane zaproszenia korepetytorów do tego tematu. "
    "Poczekaj na odpowiedź przed wysłaniem kolejnych."
)
AUTO_REJECT_RESPONSE = "Automatycznie odrzucone - inny korepetytor zaakceptował"
REJECTION_MESSAGE = "Niestety muszę odrzucić Twoje zaproszenie do lekcji..."
STUDENT_CANCEL_RESPONSE = "Cancelled by student"
DEFAULT_LESSON_TITLE = "Lekcja matematyki"


def compute_expires_at(scheduled_at: datetime, now: datetime) -> datetime:
    """
    Response deadline for an invitation.

    Far-away lessons give the tutor the full window; close lessons must be
    answered shortly before they start, but never in less than the minimum.
    """
    scheduled_at, now = ensure_utc(scheduled_at), ensure_utc(now)
    if hours_until(scheduled_at, now) > settings.invitation_max_response_hours:
        return now + timedelta(hours=settings.invitation_max_response_hours)
    return max(
        scheduled_at - timedelta(hours=settings.invitation_lesson_buffer_hours),
        now + timedelta(hours=settings.invitation_min_response_hours),
    )


class InvitationService(BaseService):
    """Pending invitations, tutor responses and the expiry sweep."""

    def __init__(
        self,
        db: Session,
        payment_service: Optional[PaymentService] = None,
        notification_service: Optional[NotificationService] = None,
        availability_service: Optional[AvailabilityService] = None,
        balance_service: Optional[BalanceService] = None,
        progression_service: Optional[ProgressionService] = None,
    ):
        super().__init__(db)
        self.payment_service = payment_service or PaymentService(db)
        self.notification_service = notification_service or NotificationService(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.balance_service = balance_service or BalanceService(db)
        self.progression_service = progression_service or ProgressionService(db)

        self.repository = RepositoryFactory.create_invitation_repository(db)
        self.lesson_repository = RepositoryFactory.create_lesson_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    # ------------------------------------------------------------------ #
    # Booking
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("check_topic_bookable")
    def check_topic_bookable(self, student: User, topic_id: Optional[str] = None) -> Dict[str, Any]:
        """Run the booking gates without placing a hold."""
        self._require_student(student)
        topic = self.progression_service.resolve_topic(student.id, topic_id)
        self.progression_service.ensure_bookable(student.id, topic)
        self._ensure_no_pending(student.id, topic.id if topic else None)
        return {
            "bookable": True,
            "topic_id": topic.id if topic else None,
            "topic_name": topic.name if topic else None,
        }

    @BaseService.measure_operation("create_invitation")
    def create_invitation(
        self,
        student: User,
        tutor_id: Optional[str],
        time_slot: Optional[str],
        payment_method: str = PaymentMethod.CARD.value,
        special_needs: Optional[str] = None,
        topic_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Invite a tutor to teach a topic at ``time_slot``.

        The payment hold is placed before the invitation is stored: a card
        authorization up front, or a balance debit in the insert transaction.

        Returns:
            {"message", "invitation", "client_secret"}

        Raises:
            ForbiddenException: caller is not a student
            ValidationException: missing fields, bad date, past time
            BusinessRuleException: topic gating, pending invitation, funds
            PaymentException: card authorization failed
        """
        self._require_student(student)
        now = ensure_utc(now) if now else utc_now()

        if not tutor_id or not time_slot:
            raise ValidationException("Brakujące wymagane pola", code="MISSING_FIELDS")
        scheduled_at = parse_client_datetime(time_slot)
        if scheduled_at is None:
            raise ValidationException("Nieprawidłowy format daty", code="INVALID_DATE")
        if scheduled_at <= now:
            raise ValidationException(
                "Nie można zarezerwować lekcji w przeszłości", code="TIME_IN_PAST"
            )
        try:
            method = PaymentMethod(payment_method or PaymentMethod.CARD.value)
        except ValueError:
            raise ValidationException("Nieprawidłowa metoda płatności", code="INVALID_PAYMENT_METHOD")

        tutor = self.user_repository.get_by_id(tutor_id)
        if not tutor or not tutor.is_tutor or not tutor.is_active:
            raise NotFoundException("Nie znaleziono korepetytora")

        topic = self.progression_service.resolve_topic(student.id, topic_id)
        resolved_topic_id = topic.id if topic else None
        topic_name = topic.name if topic else DEFAULT_LESSON_TITLE
        self.progression_service.ensure_bookable(student.id, topic)
        self._ensure_no_pending(student.id, resolved_topic_id)

        day, hour = local_slot(scheduled_at)
        amount = settings.lesson_price

        payment_intent_id = None
        client_secret = None
        if method == PaymentMethod.CARD:
            authorization = self.payment_service.authorize(
                amount,
                metadata={
                    "type": "lesson_booking",
                    "student_id": student.id,
                    "tutor_id": tutor.id,
                    "topic_id": resolved_topic_id,
                },
            )
            payment_intent_id = authorization["payment_intent_id"]
            client_secret = authorization.get("client_secret")

        try:
            with self.transaction():
                self._ensure_no_pending(student.id, resolved_topic_id)
                invitation = self.repository.create(
                    student_id=student.id,
                    tutor_id=tutor.id,
                    subject_id=settings.default_subject_id,
                    topic_id=resolved_topic_id,
                    matching_hours=[scheduled_at.isoformat()],
                    matching_days=[day],
                    scheduled_at=scheduled_at,
                    status=InvitationStatus.PENDING.value,
                    sent_at=now,
                    expires_at=compute_expires_at(scheduled_at, now),
                    special_needs=special_needs,
                    payment_method=method.value,
                    amount=amount,
                    payment_intent_id=payment_intent_id,
                    payment_status=(
                        PaymentStatus.AUTHORIZED.value
                        if method == PaymentMethod.CARD
                        else PaymentStatus.HELD.value
                    ),
                )
                if method == PaymentMethod.BALANCE:
                    self.balance_service.debit(
                        student.id,
                        amount,
                        BalanceTransactionType.PAYMENT,
                        f"Płatność za lekcję - {topic_name}",
                        invitation_id=invitation.id,
                    )
        except DomainException:
            if payment_intent_id:
                self._cancel_intents([payment_intent_id])
            raise

        self.log_operation(
            "create_invitation",
            invitation_id=invitation.id,
            student_id=student.id,
            tutor_id=tutor.id,
            slot=f"{day} {hour}",
        )
        self.notification_service.notify_invitation_created(invitation)
        return {
            "message": INVITATION_SENT_MESSAGE,
            "invitation": invitation,
            "client_secret": client_secret,
        }

    # ------------------------------------------------------------------ #
    # Tutor response
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("respond_to_invitation")
    def respond(
        self,
        invitation_id: str,
        tutor: User,
        accept: bool,
        response: Optional[str] = None,
        force_accept: bool = False,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Accept or reject a pending invitation.

        Returns:
            {"invitation", "lesson"} where lesson is None on rejection
        """
        if not (tutor.is_tutor or tutor.is_admin):
            raise ForbiddenException("Tylko korepetytor może odpowiadać na zaproszenia")
        now = ensure_utc(now) if now else utc_now()

        invitation = self.repository.get_with_parties(invitation_id)
        if (
            invitation is None
            or not invitation.is_pending
            or (invitation.tutor_id != tutor.id and not tutor.is_admin)
        ):
            raise NotFoundException(INVITATION_NOT_FOUND_MESSAGE, code="INVITATION_NOT_FOUND")
        if invitation.is_expired_at(now):
            raise BusinessRuleException("Zaproszenie wygasło", code="INVITATION_EXPIRED")

        if accept:
            lesson = self._accept(invitation, tutor, response, force_accept, now)
            return {"invitation": invitation, "lesson": lesson}
        self._reject(invitation, response, now)
        return {"invitation": invitation, "lesson": None}

    def _accept(
        self,
        invitation: LessonInvitation,
        tutor: User,
        response: Optional[str],
        force_accept: bool,
        now: datetime,
    ) -> Lesson:
        scheduled_at = ensure_utc(invitation.scheduled_at)
        if not force_accept:
            if not self.availability_service.has_any_availability(invitation.tutor_id):
                raise BusinessRuleException(
                    "Nie masz ustawionej dostępności w kalendarzu.", code="NO_AVAILABILITY"
                )
            if not self.availability_service.is_tutor_available(invitation.tutor_id, scheduled_at):
                day, hour = local_slot(scheduled_at)
                raise AvailabilityConflictException(
                    details={
                        "requestedDay": day,
                        "requestedDayName": DAY_NAMES_PL[day],
                        "requestedHour": hour,
                        "scheduledAt": scheduled_at.isoformat(),
                    },
                    suggested_times=self.availability_service.suggest_alternative_times(
                        invitation.tutor_id, scheduled_at
                    ),
                )
        elif self.availability_service.is_slot_occupied(invitation.tutor_id, scheduled_at):
            raise BookingConflictException(details={"scheduledAt": scheduled_at.isoformat()})

        captured = False
        if invitation.payment_method == PaymentMethod.CARD and invitation.payment_intent_id:
            # Failure leaves the invitation pending so the tutor can retry
            self.payment_service.capture(invitation.payment_intent_id)
            captured = True

        deferred_releases: List[str] = []
        try:
            with self.transaction():
                lesson = self._materialize_lesson(invitation, tutor, response, now, deferred_releases)
        except DomainException:
            if captured:
                self._refund_after_failed_accept(invitation)
            raise

        self._cancel_intents(deferred_releases)
        self.log_operation(
            "accept_invitation", invitation_id=invitation.id, lesson_id=lesson.id, forced=force_accept
        )
        self.notification_service.notify_invitation_accepted(invitation, lesson)
        return lesson

    def _materialize_lesson(
        self,
        invitation: LessonInvitation,
        tutor: User,
        response: Optional[str],
        now: datetime,
        deferred_releases: List[str],
    ) -> Lesson:
        if not self._claim(
            invitation,
            InvitationStatus.ACCEPTED,
            now,
            tutor_response=response,
            payment_status=PaymentStatus.PAID.value,
        ):
            raise ConflictException(INVITATION_NOT_FOUND_MESSAGE, code="INVITATION_ALREADY_RESPONDED")

        title = invitation.topic.name if invitation.topic else DEFAULT_LESSON_TITLE
        lesson = self.lesson_repository.insert_active(
            student_id=invitation.student_id,
            tutor_id=invitation.tutor_id,
            topic_id=invitation.topic_id,
            invitation_id=invitation.id,
            title=title,
            scheduled_at=ensure_utc(invitation.scheduled_at),
            status=LessonStatus.SCHEDULED.value,
            price=invitation.amount,
            payment_method=invitation.payment_method,
            payment_status=PaymentStatus.PAID.value,
            payment_intent_id=invitation.payment_intent_id,
        )
        if lesson is None:
            raise BookingConflictException(
                details={"scheduledAt": ensure_utc(invitation.scheduled_at).isoformat()}
            )

        self.progression_service.mark_in_progress(invitation.student_id, invitation.topic_id)

        for other in self.repository.get_other_pending_for_student(
            invitation.student_id, invitation.id
        ):
            if self._claim(other, InvitationStatus.REJECTED, now, tutor_response=AUTO_REJECT_RESPONSE):
                self._release_hold(
                    other, f"Zwrot za odrzucone zaproszenie - {self._topic_name(other)}", deferred_releases
                )
                self.log_operation("auto_reject_invitation", invitation_id=other.id)

        self.notification_service.send_system_message(
            tutor.id,
            invitation.student_id,
            f"Zaakceptowałem Twoje zaproszenie do lekcji: {title} "
            f"({format_lesson_time(lesson.scheduled_at)}). Do zobaczenia!",
        )
        return lesson

    def _refund_after_failed_accept(self, invitation: LessonInvitation) -> None:
        try:
            self.payment_service.refund(invitation.payment_intent_id)
            self.logger.warning(
                f"Refunded captured payment {invitation.payment_intent_id} after failed accept"
            )
        except DomainException as e:
            self.logger.error(
                f"Manual reconciliation needed: payment {invitation.payment_intent_id} captured "
                f"for invitation {invitation.id} but refund failed: {e.message}"
            )

    def _reject(self, invitation: LessonInvitation, response: Optional[str], now: datetime) -> None:
        deferred_releases: List[str] = []
        with self.transaction():
            if not self._claim(invitation, InvitationStatus.REJECTED, now, tutor_response=response):
                raise NotFoundException(INVITATION_NOT_FOUND_MESSAGE, code="INVITATION_NOT_FOUND")
            self._release_hold(
                invitation,
                f"Zwrot za odrzucone zaproszenie - {self._topic_name(invitation)}",
                deferred_releases,
            )
            message = REJECTION_MESSAGE
            if response:
                message = f"{message}\n\n{response}"
            self.notification_service.send_system_message(
                invitation.tutor_id, invitation.student_id, message
            )

        self._cancel_intents(deferred_releases)
        self.log_operation("reject_invitation", invitation_id=invitation.id)
        self.notification_service.notify_invitation_rejected(invitation, response)

    # ------------------------------------------------------------------ #
    # Student cancel, listing, expiry
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("cancel_invitation")
    def cancel_invitation(
        self, invitation_id: str, student: User, now: Optional[datetime] = None
    ) -> LessonInvitation:
        """Withdraw an own pending invitation; the hold is released with no fee."""
        now = ensure_utc(now) if now else utc_now()
        invitation = self.repository.get_by_id(invitation_id)
        if invitation is None or invitation.student_id != student.id:
            raise NotFoundException("Nie znaleziono zaproszenia", code="INVITATION_NOT_FOUND")

        deferred_releases: List[str] = []
        with self.transaction():
            if not self._claim(
                invitation, InvitationStatus.CANCELLED, now, tutor_response=STUDENT_CANCEL_RESPONSE
            ):
                raise BusinessRuleException(
                    "Można anulować tylko oczekujące zaproszenie", code="INVITATION_NOT_PENDING"
                )
            self._release_hold(
                invitation,
                f"Zwrot za anulowane zaproszenie - {self._topic_name(invitation)}",
                deferred_releases,
            )

        self._cancel_intents(deferred_releases)
        self.log_operation("cancel_invitation", invitation_id=invitation.id)
        return invitation

    def list_for_student(self, student: User) -> List[LessonInvitation]:
        return self.repository.list_for_student(student.id)

    def list_for_tutor(self, tutor: User) -> List[LessonInvitation]:
        return self.repository.list_for_tutor(tutor.id)

    @BaseService.measure_operation("expire_stale_invitations")
    def expire_stale_invitations(
        self, now: Optional[datetime] = None, limit: int = 500
    ) -> Dict[str, int]:
        """
        Expire pending invitations past their deadline and release holds.

        Safe to run concurrently and repeatedly: a row whose claim fails was
        already handled elsewhere and is skipped.
        """
        now = ensure_utc(now) if now else utc_now()
        stats = {"processed": 0, "expired": 0, "skipped": 0, "failed": 0}

        for invitation in self.repository.get_expired_pending(now, limit=limit):
            stats["processed"] += 1
            deferred_releases: List[str] = []
            try:
                with self.transaction():
                    claimed = self._claim(invitation, InvitationStatus.EXPIRED, now)
                    if claimed:
                        self._release_hold(
                            invitation,
                            f"Zwrot za nieodpowiedziane zaproszenie - {self._topic_name(invitation)}",
                            deferred_releases,
                        )
            except DomainException as e:
                self.logger.error(f"Failed to expire invitation {invitation.id}: {e.message}")
                stats["failed"] += 1
                continue
            if claimed:
                self._cancel_intents(deferred_releases)
                stats["expired"] += 1
            else:
                stats["skipped"] += 1

        if stats["processed"]:
            self.log_operation("expire_stale_invitations", **stats)
        return stats

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _require_student(self, user: User) -> None:
        if not user.is_student:
            raise ForbiddenException("Tylko uczniowie mogą rezerwować lekcje")

    def _ensure_no_pending(self, student_id: str, topic_id: Optional[str]) -> None:
        if self.repository.get_pending_for_student_topic(student_id, topic_id):
            raise BusinessRuleException(
                PENDING_INVITATIONS_MESSAGE, code="PENDING_INVITATIONS_EXIST"
            )

    def _claim(
        self, invitation: LessonInvitation, target: InvitationStatus, now: datetime, **values: Any
    ) -> bool:
        validate_transition(INVITATION_TRANSITIONS, InvitationStatus.PENDING, target)
        return self.repository.claim_status(
            invitation.id,
            InvitationStatus.PENDING.value,
            target.value,
            responded_at=now,
            **values,
        )

    def _release_hold(
        self, invitation: LessonInvitation, refund_description: str, deferred_releases: List[str]
    ) -> None:
        """
        Give the student's money back.

        Balance holds are refunded in the current transaction. Card
        authorizations are collected and cancelled once the transaction
        commits.
        """
        if invitation.payment_method == PaymentMethod.BALANCE:
            self.balance_service.credit(
                invitation.student_id,
                invitation.amount,
                BalanceTransactionType.REFUND,
                refund_description,
                invitation_id=invitation.id,
            )
            invitation.payment_status = PaymentStatus.REFUNDED.value
        else:
            if invitation.payment_intent_id:
                deferred_releases.append(invitation.payment_intent_id)
            invitation.payment_status = PaymentStatus.RELEASED.value

    def _cancel_intents(self, payment_intent_ids: List[str]) -> None:
        for payment_intent_id in payment_intent_ids:
            try:
                self.payment_service.release(payment_intent_id)
            except DomainException as e:
                self.logger.warning(
                    f"Could not release authorization {payment_intent_id}: {e.message}"
                )

    @staticmethod
    def _topic_name(invitation: LessonInvitation) -> str:
        return invitation.topic.name if invitation.topic else DEFAULT_LESSON_TITLE
