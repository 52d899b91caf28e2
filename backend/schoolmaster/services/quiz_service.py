# backend/schoolmaster/services/quiz_service.py
"""
Quiz Service for the SchoolMaster platform.

Grades quiz attempts and pays quiz XP on the first passing attempt only.
"""

from decimal import ROUND_HALF_UP, Decimal
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import BusinessRuleException, NotFoundException
from ..models.quiz import QuizQuestion
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

# Failed attempts after which the student is pointed to a tutor
HELP_AFTER_FAILURES = 2


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _as_set(value: Any) -> Optional[frozenset]:
    """Decode a multiple-select answer; None when it is malformed."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if not isinstance(value, (list, tuple)):
        return None
    return frozenset(_as_text(item).strip().lower() for item in value)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def grade_answer(question_type: str, correct: Any, given: Any) -> bool:
    """Whether ``given`` answers a question of ``question_type`` correctly."""
    if _is_empty(given):
        return False

    if question_type in ("multiple_choice", "true_false", "short_answer"):
        return _as_text(given).strip().lower() == _as_text(correct).strip().lower()

    if question_type == "multiple_select":
        given_set, correct_set = _as_set(given), _as_set(correct)
        return given_set is not None and correct_set is not None and given_set == correct_set

    if question_type == "math_problem":
        return _as_text(given).strip() == _as_text(correct).strip()

    return False


def score_percent(earned: int, total: int) -> int:
    if total <= 0:
        return 0
    # Halves round up
    return int((Decimal(earned) * 100 / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class QuizService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.quiz_repository = RepositoryFactory.create_quiz_repository(db)
        self.attempt_repository = RepositoryFactory.create_quiz_attempt_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("submit_quiz_attempt")
    def submit_attempt(
        self,
        quiz_id: str,
        student: User,
        answers: Iterable[Dict[str, Any]],
        time_taken: int = 0,
    ) -> Dict[str, Any]:
        """
        Grade and store an attempt.

        Args:
            answers: dicts with question_id and answer

        Returns:
            {"attempt", "score", "passed", "earned_points", "total_points",
             "xp_awarded", "question_results", "suggest_help"}
        """
        quiz = self.quiz_repository.get_with_questions(quiz_id)
        if quiz is None or not quiz.is_active:
            raise NotFoundException("Nie znaleziono quizu", code="QUIZ_NOT_FOUND")

        previous_attempts = self.attempt_repository.count_attempts(quiz.id, student.id)
        if quiz.max_attempts and previous_attempts >= quiz.max_attempts:
            raise BusinessRuleException(
                "Wykorzystano maksymalną liczbę podejść do tego quizu",
                code="MAX_ATTEMPTS_REACHED",
            )

        given = {str(item.get("question_id")): item.get("answer") for item in answers}
        question_results: List[Dict[str, Any]] = []
        earned = 0
        total = 0
        for question in quiz.questions:
            points = question.points or 1
            total += points
            correct = grade_answer(question.question_type, question.correct_answer, given.get(question.id))
            if correct:
                earned += points
            question_results.append(self._question_result(question, given.get(question.id), correct))

        score = score_percent(earned, total)
        passed = score >= quiz.passing_score
        already_passed = self.attempt_repository.has_passed(quiz.id, student.id)
        earlier_failures = self.attempt_repository.count_failed(quiz.id, student.id)

        xp_awarded = 0
        with self.transaction():
            if passed and not already_passed and quiz.xp_reward:
                xp_awarded = quiz.xp_reward
                student_row = self.user_repository.get_by_id(student.id)
                student_row.xp = (student_row.xp or 0) + xp_awarded
            attempt = self.attempt_repository.create(
                quiz_id=quiz.id,
                student_id=student.id,
                answers=[{"question_id": key, "answer": value} for key, value in given.items()],
                score=score,
                passed=passed,
                earned_points=earned,
                total_points=total,
                xp_awarded=xp_awarded,
                time_taken=time_taken or 0,
            )

        self.log_operation(
            "submit_quiz_attempt", quiz_id=quiz.id, student_id=student.id, score=score, passed=passed
        )
        return {
            "attempt": attempt,
            "score": score,
            "passed": passed,
            "earned_points": earned,
            "total_points": total,
            "xp_awarded": xp_awarded,
            "question_results": question_results,
            "suggest_help": not passed and earlier_failures >= HELP_AFTER_FAILURES,
        }

    @staticmethod
    def _question_result(question: QuizQuestion, answer: Any, correct: bool) -> Dict[str, Any]:
        return {
            "question_id": question.id,
            "correct": correct,
            "answer": answer,
            "correct_answer": question.correct_answer,
            "explanation": question.explanation,
            "points": question.points or 1,
        }

