# backend/schoolmaster/routes/student.py
"""
Student-facing routes.

Router Endpoints:
    POST /book-topic-lesson - Book a tutor directly, paying from balance
    GET /invitations - Own invitations, newest first
    POST /invitations/{invitation_id}/cancel - Withdraw a pending invitation
    GET /matches - Best tutors for the saved matching preferences
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from ..api.dependencies import (
    get_invitation_service,
    get_lesson_service,
    get_matching_service,
    require_student,
)
from ..core.constants import DEFAULT_MATCH_LIMIT
from ..core.exceptions import DomainException, handle_domain_exception
from ..models.user import User
from ..schemas.invitation import InvitationResponse
from ..schemas.lesson import DirectBookingRequest, LessonResponse
from ..schemas.matching import TutorMatchResponse
from ..services.invitation_service import InvitationService
from ..services.lesson_service import LessonService
from ..services.matching_service import MatchingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/student", tags=["student"])


@router.post(
    "/book-topic-lesson", response_model=LessonResponse, status_code=status.HTTP_201_CREATED
)
def book_topic_lesson(
    request: DirectBookingRequest,
    current_user: User = Depends(require_student),
    lesson_service: LessonService = Depends(get_lesson_service),
) -> LessonResponse:
    """The lesson stays pending until the tutor confirms it."""
    try:
        lesson = lesson_service.book_direct(
            current_user, request.tutor_id, request.topic_id, request.scheduled_at
        )
    except DomainException as e:
        handle_domain_exception(e)
    return LessonResponse.model_validate(lesson)


@router.get("/invitations", response_model=List[InvitationResponse])
def list_invitations(
    current_user: User = Depends(require_student),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> List[InvitationResponse]:
    return [
        InvitationResponse.model_validate(invitation)
        for invitation in invitation_service.list_for_student(current_user)
    ]


@router.post("/invitations/{invitation_id}/cancel", response_model=InvitationResponse)
def cancel_invitation(
    invitation_id: str = Path(..., description="Invitation ULID"),
    current_user: User = Depends(require_student),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> InvitationResponse:
    try:
        invitation = invitation_service.cancel_invitation(invitation_id, current_user)
    except DomainException as e:
        handle_domain_exception(e)
    return InvitationResponse.model_validate(invitation)


@router.get("/matches", response_model=List[TutorMatchResponse])
def get_matches(
    limit: int = Query(DEFAULT_MATCH_LIMIT, ge=1, le=20),
    current_user: User = Depends(require_student),
    matching_service: MatchingService = Depends(get_matching_service),
) -> List[TutorMatchResponse]:
    try:
        matches = matching_service.find_matches(current_user, limit=limit)
    except DomainException as e:
        handle_domain_exception(e)

    return [
        TutorMatchResponse(
            tutor_id=match["tutor"].id,
            first_name=match["tutor"].first_name,
            last_name=match["tutor"].last_name,
            hourly_rate=match["tutor"].hourly_rate,
            rating=match["tutor"].rating,
            teaching_style=match["tutor"].teaching_style,
            score=match["score"],
            overlap=match["overlap"],
        )
        for match in matches
    ]
