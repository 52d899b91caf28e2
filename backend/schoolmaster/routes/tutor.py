# backend/schoolmaster/routes/tutor.py
"""
Tutor-facing routes.

Router Endpoints:
    POST /respond-invitation - Accept or reject a pending invitation
    GET /invitations - Received invitations, pending first
    POST /complete-topic/{lesson_id} - Complete a lesson and apply rewards
    GET /availability/{tutor_id} - Weekly template plus booked slots
    POST /availability - Replace the caller's weekly template
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path

from ..api.dependencies import (
    get_availability_service,
    get_current_active_user,
    get_invitation_service,
    get_lesson_service,
    require_tutor,
)
from ..core.exceptions import DomainException, handle_domain_exception
from ..models.user import User
from ..schemas.availability import (
    AvailabilitySlotResponse,
    AvailabilityUpdateRequest,
    AvailabilityUpdateResponse,
    BookedSlotResponse,
    TutorAvailabilityResponse,
)
from ..schemas.invitation import InvitationRespondRequest, InvitationRespondResponse, InvitationResponse
from ..schemas.lesson import CompleteTopicRequest, CompleteTopicResponse, LessonResponse
from ..services.availability_service import AvailabilityService
from ..services.invitation_service import InvitationService
from ..services.lesson_service import LessonService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tutor", tags=["tutor"])

INVITATION_ACCEPTED_MESSAGE = "Zaproszenie zostało zaakceptowane"
INVITATION_REJECTED_MESSAGE = "Zaproszenie zostało odrzucone"
AVAILABILITY_SAVED_MESSAGE = "Dostępność została zapisana"


@router.post("/respond-invitation", response_model=InvitationRespondResponse)
def respond_to_invitation(
    request: InvitationRespondRequest,
    current_user: User = Depends(require_tutor),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> InvitationRespondResponse:
    """
    Accept or reject an invitation.

    Accepting captures the payment hold and creates the lesson; a slot the
    tutor can no longer teach answers 409 with suggested alternatives unless
    ``forceAccept`` is set.
    """
    try:
        result = invitation_service.respond(
            request.invitation_id,
            current_user,
            accept=request.accept,
            response=request.response,
            force_accept=request.force_accept,
        )
    except DomainException as e:
        handle_domain_exception(e)

    lesson = result["lesson"]
    return InvitationRespondResponse(
        message=INVITATION_ACCEPTED_MESSAGE if request.accept else INVITATION_REJECTED_MESSAGE,
        invitation=InvitationResponse.model_validate(result["invitation"]),
        lesson=LessonResponse.model_validate(lesson) if lesson is not None else None,
    )


@router.get("/invitations", response_model=List[InvitationResponse])
def list_invitations(
    current_user: User = Depends(require_tutor),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> List[InvitationResponse]:
    return [
        InvitationResponse.model_validate(invitation)
        for invitation in invitation_service.list_for_tutor(current_user)
    ]


@router.post("/complete-topic/{lesson_id}", response_model=CompleteTopicResponse)
def complete_topic(
    lesson_id: str = Path(..., description="Lesson ULID"),
    request: Optional[CompleteTopicRequest] = None,
    current_user: User = Depends(require_tutor),
    lesson_service: LessonService = Depends(get_lesson_service),
) -> CompleteTopicResponse:
    try:
        result = lesson_service.complete(
            lesson_id,
            current_user,
            rating=request.rating if request else None,
            feedback=request.feedback if request else None,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return CompleteTopicResponse(
        message=result["message"],
        lesson=LessonResponse.model_validate(result["lesson"]),
        xp_awarded=result["xp_awarded"],
        loyalty_level=result["loyalty_level"],
        loyalty_level_name=result["loyalty_level_name"],
        referral_confirmed=result["referral_confirmed"],
    )


@router.get("/availability/{tutor_id}", response_model=TutorAvailabilityResponse)
def get_tutor_availability(
    tutor_id: str = Path(..., description="Tutor ULID"),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> TutorAvailabilityResponse:
    """
    Weekly template, future booked slots and, for a student caller, the
    topics they already have scheduled or completed lessons for with this tutor.
    """
    topic_ids: List[str] = []
    if current_user.is_student:
        topic_ids = availability_service.get_student_topic_lessons(current_user.id, tutor_id)

    return TutorAvailabilityResponse(
        availability=[
            AvailabilitySlotResponse(**slot)
            for slot in availability_service.get_availability(tutor_id)
        ],
        booked_slots=[
            BookedSlotResponse(**slot) for slot in availability_service.get_booked_slots(tutor_id)
        ],
        student_topic_lessons=topic_ids,
    )


@router.post("/availability", response_model=AvailabilityUpdateResponse)
def set_availability(
    request: AvailabilityUpdateRequest,
    current_user: User = Depends(require_tutor),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityUpdateResponse:
    try:
        saved = availability_service.set_availability(
            current_user.id, [slot.model_dump() for slot in request.slots]
        )
    except DomainException as e:
        handle_domain_exception(e)

    return AvailabilityUpdateResponse(
        message=AVAILABILITY_SAVED_MESSAGE,
        availability=[AvailabilitySlotResponse(**slot) for slot in saved],
    )
