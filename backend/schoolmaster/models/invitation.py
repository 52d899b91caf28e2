# backend/schoolmaster/models/invitation.py
"""
Lesson invitation model.

An invitation is a time-boxed request from a student to one tutor for one
topic at one time slot. The payment hold (card authorization or balance
debit) is placed before the row is written, so every pending invitation is
backed by money.

Lifecycle:
    pending -> accepted   (tutor accepts, payment captured, lesson created)
    pending -> rejected   (tutor rejects, or another tutor accepted first)
    pending -> expired    (background sweep after expires_at)
    pending -> cancelled  (student withdraws)
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import PaymentMethod
from ..core.timezone_utils import ensure_utc
from ..database import Base
from .base_enum import status_values, validate_transition

logger = logging.getLogger(__name__)


class InvitationStatus(str, Enum):
    """Invitation lifecycle statuses."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


INVITATION_TRANSITIONS = {
    InvitationStatus.PENDING: {
        InvitationStatus.ACCEPTED,
        InvitationStatus.REJECTED,
        InvitationStatus.EXPIRED,
        InvitationStatus.CANCELLED,
    },
    InvitationStatus.ACCEPTED: set(),
    InvitationStatus.REJECTED: set(),
    InvitationStatus.EXPIRED: set(),
    InvitationStatus.CANCELLED: set(),
}


class LessonInvitation(Base):
    """Pending-or-resolved request for a tutor to teach a topic at a slot."""

    __tablename__ = "lesson_invitations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    tutor_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    subject_id = Column(String(50), nullable=False)
    topic_id = Column(String(50), ForeignKey("topics.id"), nullable=True)

    matching_hours = Column(JSON, nullable=False, default=list)
    matching_days = Column(JSON, nullable=False, default=list)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(20), nullable=False, default=InvitationStatus.PENDING.value, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    tutor_response = Column(Text, nullable=True)
    special_needs = Column(Text, nullable=True)

    # Payment hold
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.CARD.value)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_intent_id = Column(String(255), nullable=True, comment="Stripe manual-capture intent")
    payment_status = Column(String(30), nullable=True)

    student = relationship("User", foreign_keys=[student_id])
    tutor = relationship("User", foreign_keys=[tutor_id])
    topic = relationship("Topic")

    __table_args__ = (
        CheckConstraint(
            f"status IN ({status_values(InvitationStatus)})", name="ck_invitations_status"
        ),
        CheckConstraint(
            f"payment_method IN ({status_values(PaymentMethod)})",
            name="ck_invitations_payment_method",
        ),
        CheckConstraint("amount >= 0", name="ck_invitations_amount_non_negative"),
        Index("ix_invitations_student_topic_status", "student_id", "topic_id", "status"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = InvitationStatus.PENDING.value
        if self.sent_at is None:
            self.sent_at = datetime.now(timezone.utc)
        logger.info(
            f"Creating invitation for student {self.student_id} with tutor {self.tutor_id}"
        )

    def __repr__(self) -> str:
        return (
            f"<LessonInvitation {self.id}: student={self.student_id}, "
            f"tutor={self.tutor_id}, topic={self.topic_id}, status={self.status}>"
        )

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    def is_expired_at(self, now: datetime) -> bool:
        return ensure_utc(self.expires_at) < ensure_utc(now)

    def transition_to(
        self, target: InvitationStatus, *, now: datetime, response: Optional[str] = None
    ) -> None:
        """Move to a terminal status and stamp the response."""
        validate_transition(INVITATION_TRANSITIONS, self.status, target)
        self.status = target.value
        self.responded_at = now
        if response is not None:
            self.tutor_response = response
        logger.info(f"Invitation {self.id} -> {target.value}")
