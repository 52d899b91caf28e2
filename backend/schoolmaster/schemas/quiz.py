"""Quiz attempt schemas."""

from typing import Any, List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class QuizAnswerIn(StrictRequestModel):
    question_id: str
    answer: Any = None


class QuizAttemptRequest(StrictRequestModel):
    answers: List[QuizAnswerIn] = Field(default_factory=list)
    time_taken: int = Field(0, ge=0)


class QuestionResultResponse(StrictModel):
    question_id: str
    correct: bool
    answer: Any = None
    correct_answer: Any = None
    explanation: Optional[str] = None
    points: int


class QuizAttemptResponse(StrictModel):
    attempt_id: str
    score: int
    passed: bool
    earned_points: int
    total_points: int
    xp_awarded: int
    question_results: List[QuestionResultResponse]
    suggest_help: bool
