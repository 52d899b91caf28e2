# backend/schoolmaster/models/quiz.py
"""Topic quizzes, their questions and student attempts."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    topic_id = Column(String(50), ForeignKey("topics.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    passing_score = Column(Integer, nullable=False)  # percent
    xp_reward = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=True)
    time_limit = Column(Integer, nullable=True)  # minutes
    is_active = Column(Boolean, nullable=False, default=True)

    questions = relationship(
        "QuizQuestion", back_populates="quiz", order_by="QuizQuestion.order", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("passing_score BETWEEN 0 AND 100", name="ck_quizzes_passing_score"),
    )


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    quiz_id = Column(String(26), ForeignKey("quizzes.id"), nullable=False, index=True)
    question_type = Column(String(30), nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)
    correct_answer = Column(JSON, nullable=False)
    explanation = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=1)
    order = Column(Integer, nullable=False, default=0)

    quiz = relationship("Quiz", back_populates="questions")

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if self.points is None:
            self.points = 1


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    quiz_id = Column(String(26), ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    answers = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False)
    passed = Column(Boolean, nullable=False)
    earned_points = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    xp_awarded = Column(Integer, nullable=False, default=0)
    time_taken = Column(Integer, nullable=False, default=0)  # seconds
    completed_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    quiz = relationship("Quiz")
