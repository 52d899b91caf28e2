# backend/schoolmaster/routes/lessons.py
"""
Lesson booking and lifecycle routes.

Router Endpoints:
    POST /book - Send a paid invitation to a tutor
    POST /book-topic - Check whether a topic can be booked right now
    POST /{lesson_id}/confirm - Tutor confirms a directly booked lesson
    POST /{lesson_id}/cancel - Cancel with time-based fees
    POST /{lesson_id}/reschedule - Move a scheduled lesson
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, status

from ..api.dependencies import (
    get_current_active_user,
    get_invitation_service,
    get_lesson_service,
    require_student,
    require_tutor,
)
from ..core.exceptions import DomainException, handle_domain_exception
from ..models.user import User
from ..schemas.invitation import (
    InvitationCreateRequest,
    InvitationCreateResponse,
    InvitationResponse,
    TopicBookableRequest,
    TopicBookableResponse,
)
from ..schemas.lesson import (
    LessonCancelRequest,
    LessonCancelResponse,
    LessonRescheduleRequest,
    LessonRescheduleResponse,
    LessonResponse,
)
from ..services.invitation_service import InvitationService
from ..services.lesson_service import LessonService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lessons", tags=["lessons"])

LESSON_CANCELLED_MESSAGE = "Lekcja została anulowana"
LESSON_RESCHEDULED_MESSAGE = "Lekcja została przełożona"


@router.post("/book", response_model=InvitationCreateResponse, status_code=status.HTTP_201_CREATED)
def book_lesson(
    request: InvitationCreateRequest,
    current_user: User = Depends(require_student),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> InvitationCreateResponse:
    """
    Send a lesson invitation with a payment hold.

    The hold (card authorization or balance debit) is placed before the
    invitation is stored; the tutor has until ``expiresAt`` to answer.
    """
    try:
        result = invitation_service.create_invitation(
            student=current_user,
            tutor_id=request.tutor_id,
            time_slot=request.time_slot,
            payment_method=request.payment_method.value,
            special_needs=request.special_needs,
            topic_id=request.topic_id,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return InvitationCreateResponse(
        message=result["message"],
        invitation=InvitationResponse.model_validate(result["invitation"]),
        client_secret=result["client_secret"],
    )


@router.post("/book-topic", response_model=TopicBookableResponse)
def check_topic_booking(
    request: Optional[TopicBookableRequest] = None,
    current_user: User = Depends(require_student),
    invitation_service: InvitationService = Depends(get_invitation_service),
) -> TopicBookableResponse:
    try:
        result = invitation_service.check_topic_bookable(
            current_user, request.topic_id if request else None
        )
    except DomainException as e:
        handle_domain_exception(e)
    return TopicBookableResponse(**result)


@router.post("/{lesson_id}/confirm", response_model=LessonResponse)
def confirm_lesson(
    lesson_id: str = Path(..., description="Lesson ULID"),
    current_user: User = Depends(require_tutor),
    lesson_service: LessonService = Depends(get_lesson_service),
) -> LessonResponse:
    try:
        lesson = lesson_service.confirm(lesson_id, current_user)
    except DomainException as e:
        handle_domain_exception(e)
    return LessonResponse.model_validate(lesson)


@router.post("/{lesson_id}/cancel", response_model=LessonCancelResponse)
def cancel_lesson(
    lesson_id: str = Path(..., description="Lesson ULID"),
    request: Optional[LessonCancelRequest] = None,
    current_user: User = Depends(get_current_active_user),
    lesson_service: LessonService = Depends(get_lesson_service),
) -> LessonCancelResponse:
    """Cancel a pending or scheduled lesson; fees depend on hours left before start."""
    try:
        result = lesson_service.cancel(
            lesson_id, current_user, reason=request.reason if request else None
        )
    except DomainException as e:
        handle_domain_exception(e)

    return LessonCancelResponse(
        message=LESSON_CANCELLED_MESSAGE,
        lesson=LessonResponse.model_validate(result["lesson"]),
        cancellation_fee=result["cancellation_fee"],
        refund_amount=result["refund_amount"],
        payout_reduction=result["payout_reduction"],
    )


@router.post("/{lesson_id}/reschedule", response_model=LessonRescheduleResponse)
def reschedule_lesson(
    request: LessonRescheduleRequest,
    lesson_id: str = Path(..., description="Lesson ULID"),
    current_user: User = Depends(get_current_active_user),
    lesson_service: LessonService = Depends(get_lesson_service),
) -> LessonRescheduleResponse:
    try:
        result = lesson_service.reschedule(
            lesson_id,
            request.new_scheduled_at,
            current_user,
            reason=request.reason,
            initiated_by=request.initiated_by,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return LessonRescheduleResponse(
        message=LESSON_RESCHEDULED_MESSAGE,
        lesson=LessonResponse.model_validate(result["lesson"]),
        fee=result["fee"],
        payout_reduction=result["payout_reduction"],
    )
