# backend/schoolmaster/routes/quizzes.py
"""
Quiz routes.

Router Endpoints:
    POST /{quiz_id}/attempts - Submit and grade an attempt
"""

import logging

from fastapi import APIRouter, Depends, Path, status

from ..api.dependencies import get_quiz_service, require_student
from ..core.exceptions import DomainException, handle_domain_exception
from ..models.user import User
from ..schemas.quiz import QuestionResultResponse, QuizAttemptRequest, QuizAttemptResponse
from ..services.quiz_service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


@router.post(
    "/{quiz_id}/attempts", response_model=QuizAttemptResponse, status_code=status.HTTP_201_CREATED
)
def submit_attempt(
    request: QuizAttemptRequest,
    quiz_id: str = Path(..., description="Quiz ULID"),
    current_user: User = Depends(require_student),
    quiz_service: QuizService = Depends(get_quiz_service),
) -> QuizAttemptResponse:
    try:
        result = quiz_service.submit_attempt(
            quiz_id,
            current_user,
            [answer.model_dump() for answer in request.answers],
            time_taken=request.time_taken,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return QuizAttemptResponse(
        attempt_id=result["attempt"].id,
        score=result["score"],
        passed=result["passed"],
        earned_points=result["earned_points"],
        total_points=result["total_points"],
        xp_awarded=result["xp_awarded"],
        question_results=[QuestionResultResponse(**item) for item in result["question_results"]],
        suggest_help=result["suggest_help"],
    )
