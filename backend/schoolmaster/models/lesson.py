# backend/schoolmaster/models/lesson.py
"""
Lesson model for the SchoolMaster platform.

A lesson is materialized when a tutor accepts an invitation (status
``scheduled``) or when a student books a tutor directly (status ``pending``
until the tutor confirms).

Lifecycle:
    pending -> scheduled -> completed
    pending | scheduled -> cancelled
    scheduled -> rescheduled -> scheduled   (new time, reschedule_count + 1)

Double booking is rejected by the storage layer: a partial unique index
covers (tutor_id, scheduled_at) for lessons that still occupy the slot.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.constants import DEFAULT_LESSON_DURATION
from ..database import Base
from .base_enum import status_values, validate_transition

logger = logging.getLogger(__name__)


class LessonStatus(str, Enum):
    """Lesson lifecycle statuses."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


LESSON_TRANSITIONS = {
    LessonStatus.PENDING: {LessonStatus.SCHEDULED, LessonStatus.CANCELLED},
    LessonStatus.SCHEDULED: {
        LessonStatus.COMPLETED,
        LessonStatus.CANCELLED,
        LessonStatus.RESCHEDULED,
    },
    LessonStatus.RESCHEDULED: {LessonStatus.SCHEDULED},
    LessonStatus.COMPLETED: set(),
    LessonStatus.CANCELLED: set(),
}

# Statuses that occupy the tutor's slot
ACTIVE_LESSON_STATUSES = (LessonStatus.PENDING.value, LessonStatus.SCHEDULED.value)

_ACTIVE_SLOT_PREDICATE = text("status IN ('pending', 'scheduled')")


class Lesson(Base):
    """One teaching hour between a student and a tutor."""

    __tablename__ = "lessons"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    tutor_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    topic_id = Column(String(50), ForeignKey("topics.id"), nullable=True, index=True)
    invitation_id = Column(String(26), ForeignKey("lesson_invitations.id"), nullable=True)

    title = Column(String(255), nullable=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    original_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_LESSON_DURATION)
    status = Column(String(20), nullable=False, default=LessonStatus.SCHEDULED.value, index=True)

    # Money
    price = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=True)
    payment_status = Column(String(30), nullable=True)
    payment_intent_id = Column(String(255), nullable=True)
    cancellation_fee = Column(Numeric(10, 2), nullable=True)
    payout_reduction = Column(Numeric(10, 2), nullable=True)

    reschedule_count = Column(Integer, nullable=False, default=0)
    meet_link = Column(String(255), nullable=True)

    # Outcome
    rating = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    student = relationship("User", foreign_keys=[student_id])
    tutor = relationship("User", foreign_keys=[tutor_id])
    topic = relationship("Topic")
    actions = relationship(
        "LessonAction", back_populates="lesson", cascade="all, delete-orphan", order_by="LessonAction.created_at"
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({status_values(LessonStatus)})", name="ck_lessons_status"),
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        CheckConstraint("reschedule_count >= 0", name="check_reschedule_count_non_negative"),
        CheckConstraint("rating IS NULL OR rating BETWEEN 1 AND 5", name="check_rating_range"),
        Index(
            "uq_lessons_tutor_active_slot",
            "tutor_id",
            "scheduled_at",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = LessonStatus.SCHEDULED.value
        if self.reschedule_count is None:
            self.reschedule_count = 0
        if self.duration_minutes is None:
            self.duration_minutes = DEFAULT_LESSON_DURATION
        logger.info(f"Creating lesson for student {self.student_id} with tutor {self.tutor_id}")

    def __repr__(self) -> str:
        return (
            f"<Lesson {self.id}: student={self.student_id}, tutor={self.tutor_id}, "
            f"at={self.scheduled_at}, status={self.status}>"
        )

    def transition_to(self, target: LessonStatus) -> None:
        validate_transition(LESSON_TRANSITIONS, self.status, target)
        self.status = target.value

    def confirm(self) -> None:
        """Tutor confirmed a direct booking."""
        self.transition_to(LessonStatus.SCHEDULED)
        logger.info(f"Lesson {self.id} confirmed")

    def cancel(
        self,
        cancelled_by_user_id: str,
        reason: Optional[str],
        *,
        fee: Decimal,
        payout_reduction: Decimal,
    ) -> None:
        """Cancel this lesson and record the fee split."""
        self.transition_to(LessonStatus.CANCELLED)
        self.cancelled_at = datetime.now(timezone.utc)
        self.cancelled_by_id = cancelled_by_user_id
        self.cancellation_reason = reason
        self.cancellation_fee = fee
        self.payout_reduction = payout_reduction
        logger.info(f"Lesson {self.id} cancelled by user {cancelled_by_user_id}")

    def reschedule(self, new_time: datetime, *, payout_reduction: Decimal) -> None:
        """Move the lesson to a new time; it re-enters ``scheduled``."""
        self.transition_to(LessonStatus.RESCHEDULED)
        if self.original_scheduled_at is None:
            self.original_scheduled_at = self.scheduled_at
        self.scheduled_at = new_time
        self.reschedule_count = (self.reschedule_count or 0) + 1
        if payout_reduction:
            self.payout_reduction = (self.payout_reduction or Decimal("0.00")) + payout_reduction
        self.transition_to(LessonStatus.SCHEDULED)
        logger.info(f"Lesson {self.id} rescheduled to {new_time} ({self.reschedule_count})")

    def complete(self, rating: Optional[int] = None, feedback: Optional[str] = None) -> None:
        """Mark lesson as completed."""
        self.transition_to(LessonStatus.COMPLETED)
        self.completed_at = datetime.now(timezone.utc)
        if rating is not None:
            self.rating = rating
        if feedback is not None:
            self.feedback = feedback
        logger.info(f"Lesson {self.id} marked as completed")

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.student_id, self.tutor_id)


class LessonAction(Base):
    """Audit trail row for a cancel or reschedule."""

    __tablename__ = "lesson_actions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    lesson_id = Column(String(26), ForeignKey("lessons.id"), nullable=False, index=True)
    action_type = Column(String(20), nullable=False)  # cancel, reschedule
    initiated_by = Column(String(20), nullable=False)  # student, tutor, admin
    actor_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    reason = Column(Text, nullable=True)
    previous_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    new_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    fee_amount = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    lesson = relationship("Lesson", back_populates="actions")

    def __repr__(self) -> str:
        return f"<LessonAction {self.action_type} lesson={self.lesson_id} by={self.initiated_by}>"
