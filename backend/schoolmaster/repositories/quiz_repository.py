# backend/schoolmaster/repositories/quiz_repository.py
"""Quiz definitions and student attempts."""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ..models.quiz import Quiz, QuizAttempt
from .base_repository import BaseRepository


class QuizRepository(BaseRepository[Quiz]):
    def __init__(self, db: Session):
        super().__init__(db, Quiz)

    def get_with_questions(self, quiz_id: str) -> Optional[Quiz]:
        return (
            self._build_query()
            .options(selectinload(Quiz.questions))
            .filter(Quiz.id == quiz_id)
            .first()
        )


class QuizAttemptRepository(BaseRepository[QuizAttempt]):
    def __init__(self, db: Session):
        super().__init__(db, QuizAttempt)

    def count_attempts(self, quiz_id: str, student_id: str) -> int:
        return self.count(quiz_id=quiz_id, student_id=student_id)

    def count_failed(self, quiz_id: str, student_id: str) -> int:
        return self.count(quiz_id=quiz_id, student_id=student_id, passed=False)

    def has_passed(self, quiz_id: str, student_id: str) -> bool:
        return self.exists(quiz_id=quiz_id, student_id=student_id, passed=True)
