# backend/schoolmaster/models/topic.py
"""
Curriculum topics and per-student topic progression.

Topics form a strict linear chain by ``order``. A student may book topic N
once N - 1 topics are completed. Topic XP is paid once per (student, topic),
tracked by ``TopicProgression.xp_awarded``.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .base_enum import status_values, validate_transition

logger = logging.getLogger(__name__)


class TopicProgressStatus(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


TOPIC_TRANSITIONS = {
    TopicProgressStatus.LOCKED: {TopicProgressStatus.AVAILABLE, TopicProgressStatus.IN_PROGRESS},
    TopicProgressStatus.AVAILABLE: {TopicProgressStatus.IN_PROGRESS},
    TopicProgressStatus.IN_PROGRESS: {
        TopicProgressStatus.AVAILABLE,
        TopicProgressStatus.COMPLETED,
    },
    # Further lessons on a completed topic keep it completed
    TopicProgressStatus.COMPLETED: {TopicProgressStatus.COMPLETED},
}


class Topic(Base):
    """One curriculum unit, e.g. MAT-L01."""

    __tablename__ = "topics"

    id = Column(String(50), primary_key=True)
    subject_id = Column(String(50), nullable=False, default="math-8th")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, unique=True)
    xp_reward = Column(Integer, nullable=False, default=50)
    estimated_duration = Column(Integer, nullable=False, default=60)

    def __repr__(self) -> str:
        return f"<Topic {self.id}: {self.name} (#{self.order})>"


class TopicProgression(Base):
    """A student's state on one topic."""

    __tablename__ = "student_topic_progression"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    topic_id = Column(String(50), ForeignKey("topics.id"), nullable=False)
    status = Column(String(20), nullable=False, default=TopicProgressStatus.LOCKED.value)
    xp_awarded = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    topic = relationship("Topic")

    __table_args__ = (
        UniqueConstraint("student_id", "topic_id", name="uq_progression_student_topic"),
        CheckConstraint(
            f"status IN ({status_values(TopicProgressStatus)})", name="ck_progression_status"
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = TopicProgressStatus.LOCKED.value
        if self.xp_awarded is None:
            self.xp_awarded = False

    def transition_to(self, target: TopicProgressStatus) -> None:
        validate_transition(TOPIC_TRANSITIONS, self.status, target)
        now = datetime.now(timezone.utc)
        if target == TopicProgressStatus.IN_PROGRESS and self.started_at is None:
            self.started_at = now
        if target == TopicProgressStatus.COMPLETED and self.completed_at is None:
            self.completed_at = now
        self.status = target.value
        logger.info(f"Topic {self.topic_id} for student {self.student_id} -> {target.value}")
