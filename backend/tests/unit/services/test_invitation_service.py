from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest

from schoolmaster.core.enums import PaymentMethod, PaymentStatus, RoleName
from schoolmaster.core.exceptions import (
    AvailabilityConflictException,
    BookingConflictException,
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    PaymentException,
    ValidationException,
)
from schoolmaster.core.timezone_utils import local_slot
from schoolmaster.models.balance import BalanceTransaction
from schoolmaster.models.invitation import InvitationStatus, LessonInvitation
from schoolmaster.models.lesson import Lesson, LessonStatus
from schoolmaster.models.message import Message
from schoolmaster.models.topic import TopicProgression, TopicProgressStatus
from schoolmaster.services.invitation_service import (
    AUTO_REJECT_RESPONSE,
    INVITATION_NOT_FOUND_MESSAGE,
    STUDENT_CANCEL_RESPONSE,
    compute_expires_at,
)


def _pending_invitation(db, student, tutor, when, **overrides):
    values = {
        "student_id": student.id,
        "tutor_id": tutor.id,
        "subject_id": "MATH",
        "topic_id": "MAT-L01",
        "scheduled_at": when,
        "expires_at": datetime.now(timezone.utc) + timedelta(hours=24),
        "payment_method": PaymentMethod.BALANCE.value,
        "payment_status": PaymentStatus.HELD.value,
        "amount": Decimal("100.00"),
    }
    values.update(overrides)
    invitation = LessonInvitation(**values)
    db.add(invitation)
    db.commit()
    return invitation


def _ledger(db, user_id):
    return (
        db.query(BalanceTransaction)
        .filter(BalanceTransaction.user_id == user_id)
        .order_by(BalanceTransaction.created_at)
        .all()
    )


class TestComputeExpiresAt:
    NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_far_lesson_gets_full_window(self):
        scheduled = self.NOW + timedelta(hours=72)
        assert compute_expires_at(scheduled, self.NOW) == self.NOW + timedelta(hours=48)

    def test_close_lesson_expires_two_hours_before_start(self):
        scheduled = self.NOW + timedelta(hours=10)
        assert compute_expires_at(scheduled, self.NOW) == scheduled - timedelta(hours=2)

    def test_very_close_lesson_keeps_minimum_window(self):
        scheduled = self.NOW + timedelta(hours=3)
        assert compute_expires_at(scheduled, self.NOW) == self.NOW + timedelta(hours=1)

    def test_window_boundary_is_not_capped(self):
        scheduled = self.NOW + timedelta(hours=48)
        assert compute_expires_at(scheduled, self.NOW) == scheduled - timedelta(hours=2)


class TestCreateInvitation:
    def test_card_invitation_authorizes_before_storing(
        self, invitation_service, payment_service, student, tutor, topics, lesson_time
    ):
        result = invitation_service.create_invitation(
            student, tutor.id, lesson_time.isoformat(), payment_method="card"
        )

        invitation = result["invitation"]
        assert invitation.status == InvitationStatus.PENDING.value
        assert invitation.topic_id == "MAT-L01"
        assert invitation.payment_status == PaymentStatus.AUTHORIZED.value
        assert invitation.payment_intent_id == "pi_test_123"
        assert result["client_secret"] == "pi_test_123_secret"
        assert invitation.matching_hours == [lesson_time.isoformat()]
        payment_service.authorize.assert_called_once()
        assert payment_service.authorize.call_args[0][0] == Decimal("100.00")

    def test_balance_invitation_debits_wallet(
        self, invitation_service, payment_service, unit_db, student, tutor, topics, lesson_time
    ):
        result = invitation_service.create_invitation(
            student, tutor.id, lesson_time.isoformat(), payment_method="balance"
        )

        assert result["client_secret"] is None
        assert result["invitation"].payment_status == PaymentStatus.HELD.value
        assert student.balance == Decimal("200.00")
        entries = _ledger(unit_db, student.id)
        assert len(entries) == 1
        assert entries[0].amount == Decimal("-100.00")
        assert entries[0].invitation_id == result["invitation"].id
        payment_service.authorize.assert_not_called()

    def test_insufficient_balance_stores_nothing(
        self, invitation_service, unit_db, make_user, tutor, topics, lesson_time
    ):
        poor = make_user(RoleName.STUDENT, balance=Decimal("40.00"))

        with pytest.raises(BusinessRuleException) as exc:
            invitation_service.create_invitation(
                poor, tutor.id, lesson_time.isoformat(), payment_method="balance"
            )

        assert exc.value.code == "INSUFFICIENT_FUNDS"
        assert unit_db.query(LessonInvitation).count() == 0
        assert poor.balance == Decimal("40.00")

    def test_second_invitation_for_same_topic_is_rejected(
        self, invitation_service, payment_service, make_user, student, tutor, topics, lesson_time
    ):
        other_tutor = make_user(RoleName.TUTOR, hourly_rate=Decimal("90.00"))
        invitation_service.create_invitation(student, tutor.id, lesson_time.isoformat())

        with pytest.raises(BusinessRuleException) as exc:
            invitation_service.create_invitation(student, other_tutor.id, lesson_time.isoformat())

        assert exc.value.code == "PENDING_INVITATIONS_EXIST"
        assert payment_service.authorize.call_count == 1

    def test_locked_topic_cannot_be_booked(self, invitation_service, student, tutor, topics, lesson_time):
        with pytest.raises(BusinessRuleException) as exc:
            invitation_service.create_invitation(
                student, tutor.id, lesson_time.isoformat(), topic_id="MAT-L03"
            )
        assert exc.value.code == "TOPIC_LOCKED"

    @pytest.mark.parametrize(
        "tutor_id,time_slot,code",
        [
            (None, "2030-01-01T10:00:00Z", "MISSING_FIELDS"),
            ("x", None, "MISSING_FIELDS"),
            ("x", "next tuesday", "INVALID_DATE"),
            ("x", "2001-01-01T10:00:00Z", "TIME_IN_PAST"),
        ],
    )
    def test_invalid_input(self, invitation_service, student, tutor_id, time_slot, code):
        with pytest.raises(ValidationException) as exc:
            invitation_service.create_invitation(student, tutor_id, time_slot)
        assert exc.value.code == code

    def test_only_students_can_invite(self, invitation_service, tutor, lesson_time):
        with pytest.raises(ForbiddenException):
            invitation_service.create_invitation(tutor, tutor.id, lesson_time.isoformat())

    def test_unknown_tutor(self, invitation_service, student, topics, lesson_time):
        with pytest.raises(NotFoundException):
            invitation_service.create_invitation(student, "01NOSUCHTUTOR", lesson_time.isoformat())

    def test_check_topic_bookable(self, invitation_service, student, tutor, topics, lesson_time):
        assert invitation_service.check_topic_bookable(student)["topic_id"] == "MAT-L01"

        invitation_service.create_invitation(student, tutor.id, lesson_time.isoformat())

        with pytest.raises(BusinessRuleException):
            invitation_service.check_topic_bookable(student, "MAT-L01")


class TestRespondToInvitation:
    def test_accept_captures_and_creates_lesson(
        self,
        invitation_service,
        payment_service,
        unit_db,
        student,
        tutor,
        topics,
        open_slot,
        lesson_time,
    ):
        open_slot(tutor, lesson_time)
        invitation = invitation_service.create_invitation(student, tutor.id, lesson_time.isoformat())[
            "invitation"
        ]

        result = invitation_service.respond(invitation.id, tutor, accept=True, response="Chętnie")

        lesson = result["lesson"]
        assert lesson.status == LessonStatus.SCHEDULED.value
        assert lesson.invitation_id == invitation.id
        assert lesson.title == "Liczby i działania"
        assert lesson.payment_status == PaymentStatus.PAID.value
        unit_db.refresh(invitation)
        assert invitation.status == InvitationStatus.ACCEPTED.value
        assert invitation.tutor_response == "Chętnie"
        payment_service.capture.assert_called_once_with("pi_test_123")

        progression = (
            unit_db.query(TopicProgression)
            .filter_by(student_id=student.id, topic_id="MAT-L01")
            .one()
        )
        assert progression.status == TopicProgressStatus.IN_PROGRESS.value
        assert unit_db.query(Message).filter_by(recipient_id=student.id).count() == 1

    def test_accept_auto_rejects_students_other_invitations(
        self,
        invitation_service,
        unit_db,
        make_user,
        student,
        tutor,
        topics,
        open_slot,
        lesson_time,
    ):
        other_tutor = make_user(RoleName.TUTOR)
        open_slot(tutor, lesson_time)
        accepted = _pending_invitation(unit_db, student, tutor, lesson_time)
        competing = _pending_invitation(unit_db, student, other_tutor, lesson_time)

        invitation_service.respond(accepted.id, tutor, accept=True)

        unit_db.refresh(competing)
        assert competing.status == InvitationStatus.REJECTED.value
        assert competing.tutor_response == AUTO_REJECT_RESPONSE
        assert competing.payment_status == PaymentStatus.REFUNDED.value
        assert student.balance == Decimal("400.00")

        with pytest.raises(NotFoundException):
            invitation_service.respond(competing.id, other_tutor, accept=True)

    def test_accept_without_any_availability(
        self, invitation_service, unit_db, student, tutor, topics, lesson_time
    ):
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        with pytest.raises(BusinessRuleException) as exc:
            invitation_service.respond(invitation.id, tutor, accept=True)

        assert exc.value.code == "NO_AVAILABILITY"

    def test_accept_outside_template_suggests_times(
        self, invitation_service, unit_db, student, tutor, topics, open_slot, lesson_time
    ):
        open_slot(tutor, lesson_time + timedelta(hours=2))
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        with pytest.raises(AvailabilityConflictException) as exc:
            invitation_service.respond(invitation.id, tutor, accept=True)

        assert exc.value.status_code == 409
        assert exc.value.details["requestedHour"] == local_slot(lesson_time)[1]
        assert (lesson_time + timedelta(hours=2)).isoformat() in exc.value.suggested_times
        unit_db.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING.value

    def test_force_accept_skips_template(
        self, invitation_service, unit_db, student, tutor, topics, lesson_time
    ):
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        result = invitation_service.respond(invitation.id, tutor, accept=True, force_accept=True)

        assert result["lesson"].status == LessonStatus.SCHEDULED.value

    def test_force_accept_still_rejects_occupied_slot(
        self, invitation_service, unit_db, make_user, student, tutor, topics, lesson_time
    ):
        someone = make_user(RoleName.STUDENT)
        unit_db.add(
            Lesson(
                student_id=someone.id,
                tutor_id=tutor.id,
                title="Lekcja",
                scheduled_at=lesson_time,
                price=Decimal("100.00"),
            )
        )
        unit_db.commit()
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        with pytest.raises(BookingConflictException):
            invitation_service.respond(invitation.id, tutor, accept=True, force_accept=True)

    def test_capture_failure_leaves_invitation_pending(
        self, invitation_service, payment_service, unit_db, student, tutor, topics, open_slot, lesson_time
    ):
        open_slot(tutor, lesson_time)
        invitation = invitation_service.create_invitation(student, tutor.id, lesson_time.isoformat())[
            "invitation"
        ]
        payment_service.capture.side_effect = PaymentException("card declined")

        with pytest.raises(PaymentException):
            invitation_service.respond(invitation.id, tutor, accept=True)

        unit_db.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING.value
        assert unit_db.query(Lesson).count() == 0

    def test_failed_lesson_insert_refunds_captured_payment(
        self, invitation_service, payment_service, unit_db, student, tutor, topics, open_slot, lesson_time
    ):
        open_slot(tutor, lesson_time)
        invitation = invitation_service.create_invitation(student, tutor.id, lesson_time.isoformat())[
            "invitation"
        ]
        invitation_service.lesson_repository.insert_active = Mock(return_value=None)

        with pytest.raises(BookingConflictException):
            invitation_service.respond(invitation.id, tutor, accept=True)

        payment_service.refund.assert_called_once_with("pi_test_123")
        unit_db.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING.value

    def test_reject_refunds_balance_hold(
        self, invitation_service, unit_db, student, tutor, topics, lesson_time
    ):
        invitation = invitation_service.create_invitation(
            student, tutor.id, lesson_time.isoformat(), payment_method="balance"
        )["invitation"]
        assert student.balance == Decimal("200.00")

        result = invitation_service.respond(invitation.id, tutor, accept=False, response="Brak czasu")

        assert result["lesson"] is None
        unit_db.refresh(invitation)
        assert invitation.status == InvitationStatus.REJECTED.value
        assert invitation.payment_status == PaymentStatus.REFUNDED.value
        unit_db.refresh(student)
        assert student.balance == Decimal("300.00")
        message = unit_db.query(Message).filter_by(recipient_id=student.id).one()
        assert message.content.endswith("Brak czasu")

    def test_reject_releases_card_authorization(
        self, invitation_service, payment_service, student, tutor, topics, lesson_time
    ):
        invitation = invitation_service.create_invitation(student, tutor.id, lesson_time.isoformat())[
            "invitation"
        ]

        invitation_service.respond(invitation.id, tutor, accept=False)

        payment_service.release.assert_called_once_with("pi_test_123")
        assert invitation.payment_status == PaymentStatus.RELEASED.value

    def test_other_tutor_cannot_respond(
        self, invitation_service, unit_db, make_user, student, tutor, topics, lesson_time
    ):
        stranger = make_user(RoleName.TUTOR)
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        with pytest.raises(NotFoundException) as exc:
            invitation_service.respond(invitation.id, stranger, accept=False)

        assert exc.value.message == INVITATION_NOT_FOUND_MESSAGE

    def test_students_cannot_respond(self, invitation_service, unit_db, student, tutor, topics, lesson_time):
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        with pytest.raises(ForbiddenException):
            invitation_service.respond(invitation.id, student, accept=True)

    def test_expired_invitation_cannot_be_answered(
        self, invitation_service, unit_db, student, tutor, topics, lesson_time
    ):
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)

        with pytest.raises(BusinessRuleException) as exc:
            invitation_service.respond(
                invitation.id, tutor, accept=False, now=datetime.now(timezone.utc) + timedelta(days=2)
            )

        assert exc.value.code == "INVITATION_EXPIRED"


class TestCancelInvitation:
    def test_student_cancel_returns_hold(self, invitation_service, unit_db, student, tutor, topics, lesson_time):
        invitation = invitation_service.create_invitation(
            student, tutor.id, lesson_time.isoformat(), payment_method="balance"
        )["invitation"]

        cancelled = invitation_service.cancel_invitation(invitation.id, student)

        unit_db.refresh(cancelled)
        assert cancelled.status == InvitationStatus.CANCELLED.value
        assert cancelled.tutor_response == STUDENT_CANCEL_RESPONSE
        unit_db.refresh(student)
        assert student.balance == Decimal("300.00")

        with pytest.raises(BusinessRuleException) as exc:
            invitation_service.cancel_invitation(invitation.id, student)
        assert exc.value.code == "INVITATION_NOT_PENDING"

    def test_cannot_cancel_someone_elses_invitation(
        self, invitation_service, unit_db, make_user, student, tutor, topics, lesson_time
    ):
        invitation = _pending_invitation(unit_db, student, tutor, lesson_time)
        other = make_user(RoleName.STUDENT)

        with pytest.raises(NotFoundException):
            invitation_service.cancel_invitation(invitation.id, other)


class TestExpireStaleInvitations:
    def test_sweep_expires_and_releases(
        self, invitation_service, payment_service, unit_db, make_user, student, tutor, topics, lesson_time
    ):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        second_student = make_user(RoleName.STUDENT, balance=Decimal("0.00"))
        balance_hold = _pending_invitation(unit_db, student, tutor, lesson_time, expires_at=past)
        card_hold = _pending_invitation(
            unit_db,
            second_student,
            tutor,
            lesson_time,
            expires_at=past,
            payment_method=PaymentMethod.CARD.value,
            payment_status=PaymentStatus.AUTHORIZED.value,
            payment_intent_id="pi_card_hold",
        )
        fresh = _pending_invitation(unit_db, student, tutor, lesson_time, topic_id="MAT-L02")

        stats = invitation_service.expire_stale_invitations()

        assert stats == {"processed": 2, "expired": 2, "skipped": 0, "failed": 0}
        for invitation in (balance_hold, card_hold, fresh):
            unit_db.refresh(invitation)
        assert balance_hold.status == InvitationStatus.EXPIRED.value
        assert card_hold.status == InvitationStatus.EXPIRED.value
        assert fresh.status == InvitationStatus.PENDING.value
        assert student.balance == Decimal("400.00")
        payment_service.release.assert_called_once_with("pi_card_hold")

    def test_sweep_is_idempotent(self, invitation_service, unit_db, student, tutor, topics, lesson_time):
        _pending_invitation(
            unit_db, student, tutor, lesson_time, expires_at=datetime.now(timezone.utc) - timedelta(hours=1)
        )

        first = invitation_service.expire_stale_invitations()
        second = invitation_service.expire_stale_invitations()

        assert first["expired"] == 1
        assert second == {"processed": 0, "expired": 0, "skipped": 0, "failed": 0}
        assert len(_ledger(unit_db, student.id)) == 1

    def test_lost_claim_is_skipped(self, invitation_service, unit_db, student, tutor, topics, lesson_time):
        invitation = _pending_invitation(
            unit_db, student, tutor, lesson_time, expires_at=datetime.now(timezone.utc) - timedelta(hours=1)
        )
        invitation_service.repository.get_expired_pending = Mock(return_value=[invitation])
        invitation_service.repository.claim_status = Mock(return_value=False)

        stats = invitation_service.expire_stale_invitations()

        assert stats == {"processed": 1, "expired": 0, "skipped": 1, "failed": 0}
        assert student.balance == Decimal("300.00")
