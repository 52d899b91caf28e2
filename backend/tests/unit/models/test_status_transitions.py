from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from schoolmaster.core.exceptions import BusinessRuleException
from schoolmaster.models.base_enum import can_transition, validate_transition
from schoolmaster.models.invitation import INVITATION_TRANSITIONS, InvitationStatus, LessonInvitation
from schoolmaster.models.lesson import LESSON_TRANSITIONS, Lesson, LessonStatus
from schoolmaster.models.topic import TOPIC_TRANSITIONS, TopicProgressStatus


class TestInvitationTransitions:
    @pytest.mark.parametrize(
        "target",
        [
            InvitationStatus.ACCEPTED,
            InvitationStatus.REJECTED,
            InvitationStatus.EXPIRED,
            InvitationStatus.CANCELLED,
        ],
    )
    def test_pending_can_reach_every_terminal_status(self, target):
        assert can_transition(INVITATION_TRANSITIONS, "pending", target)

    @pytest.mark.parametrize(
        "terminal",
        [
            InvitationStatus.ACCEPTED,
            InvitationStatus.REJECTED,
            InvitationStatus.EXPIRED,
            InvitationStatus.CANCELLED,
        ],
    )
    def test_terminal_statuses_are_final(self, terminal):
        for target in InvitationStatus:
            assert not can_transition(INVITATION_TRANSITIONS, terminal.value, target)

    def test_transition_stamps_response(self):
        now = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)
        invitation = LessonInvitation(
            student_id="s",
            tutor_id="t",
            subject_id="MATH",
            scheduled_at=now + timedelta(days=3),
            expires_at=now + timedelta(days=2),
            amount=Decimal("100.00"),
        )
        assert invitation.is_pending

        invitation.transition_to(InvitationStatus.REJECTED, now=now, response="Nie mogę")

        assert invitation.status == "rejected"
        assert invitation.responded_at == now
        assert invitation.tutor_response == "Nie mogę"
        with pytest.raises(BusinessRuleException) as exc:
            invitation.transition_to(InvitationStatus.ACCEPTED, now=now)
        assert exc.value.code == "INVALID_STATUS_TRANSITION"

    def test_is_expired_at_handles_naive_storage(self):
        invitation = LessonInvitation(
            student_id="s",
            tutor_id="t",
            subject_id="MATH",
            scheduled_at=datetime(2025, 5, 4, 9, 0),
            expires_at=datetime(2025, 5, 3, 9, 0),
            amount=Decimal("100.00"),
        )

        assert invitation.is_expired_at(datetime(2025, 5, 3, 9, 1, tzinfo=timezone.utc))
        assert not invitation.is_expired_at(datetime(2025, 5, 3, 9, 0, tzinfo=timezone.utc))


class TestLessonTransitions:
    def test_pending_lesson_must_be_confirmed_before_completion(self):
        assert not can_transition(LESSON_TRANSITIONS, "pending", LessonStatus.COMPLETED)
        assert can_transition(LESSON_TRANSITIONS, "pending", LessonStatus.SCHEDULED)

    @pytest.mark.parametrize("terminal", ["completed", "cancelled"])
    def test_terminal_lessons_are_final(self, terminal):
        for target in LessonStatus:
            assert not can_transition(LESSON_TRANSITIONS, terminal, target)

    def test_reschedule_returns_to_scheduled(self):
        start = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)
        lesson = Lesson(student_id="s", tutor_id="t", title="Lekcja", scheduled_at=start, price=Decimal("100"))

        lesson.reschedule(start + timedelta(days=1), payout_reduction=Decimal("15.00"))
        lesson.reschedule(start + timedelta(days=2), payout_reduction=Decimal("0"))

        assert lesson.status == LessonStatus.SCHEDULED.value
        assert lesson.reschedule_count == 2
        assert lesson.original_scheduled_at == start
        assert lesson.payout_reduction == Decimal("15.00")

    def test_completed_lesson_cannot_be_cancelled(self):
        lesson = Lesson(
            student_id="s",
            tutor_id="t",
            title="Lekcja",
            scheduled_at=datetime.now(timezone.utc),
            price=Decimal("0"),
        )
        lesson.complete(rating=4)

        with pytest.raises(BusinessRuleException):
            lesson.cancel("s", None, fee=Decimal("0"), payout_reduction=Decimal("0"))


class TestTopicTransitions:
    def test_completed_topic_stays_completed(self):
        validate_transition(TOPIC_TRANSITIONS, "completed", TopicProgressStatus.COMPLETED)

    def test_locked_topic_cannot_jump_to_completed(self):
        with pytest.raises(BusinessRuleException):
            validate_transition(TOPIC_TRANSITIONS, "locked", TopicProgressStatus.COMPLETED)
