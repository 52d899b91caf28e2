"""Lesson request and response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from ..core.enums import ActorSide
from ._strict_base import StrictModel, StrictRequestModel
from .base import Money, UtcDatetime, optional_utc


class LessonResponse(StrictModel):
    id: str
    student_id: str
    tutor_id: str
    topic_id: Optional[str] = None
    invitation_id: Optional[str] = None
    title: str
    scheduled_at: UtcDatetime
    original_scheduled_at: Optional[datetime] = None
    duration_minutes: int
    status: str
    price: Money
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    cancellation_fee: Optional[Money] = None
    payout_reduction: Optional[Money] = None
    reschedule_count: int = 0
    meet_link: Optional[str] = None
    rating: Optional[int] = None
    feedback: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @field_validator("original_scheduled_at", "completed_at", "cancelled_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(v)


class DirectBookingRequest(StrictRequestModel):
    tutor_id: Optional[str] = None
    topic_id: Optional[str] = None
    scheduled_at: Optional[str] = None


class LessonCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


class LessonCancelResponse(StrictModel):
    message: str
    lesson: LessonResponse
    cancellation_fee: Money
    refund_amount: Money
    payout_reduction: Money


class LessonRescheduleRequest(StrictRequestModel):
    new_scheduled_at: str
    reason: Optional[str] = Field(None, max_length=1000)
    initiated_by: Optional[ActorSide] = None


class LessonRescheduleResponse(StrictModel):
    message: str
    lesson: LessonResponse
    fee: Money
    payout_reduction: Money


class CompleteTopicRequest(StrictRequestModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=2000)


class CompleteTopicResponse(StrictModel):
    message: str
    lesson: LessonResponse
    xp_awarded: int
    loyalty_level: int
    loyalty_level_name: str
    referral_confirmed: bool
