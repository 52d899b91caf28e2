"""
Invitation schemas.

Required booking fields are optional at the schema level so the service can
answer with its own "missing fields" error instead of a generic 422.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from ..core.enums import PaymentMethod
from ._strict_base import StrictModel, StrictRequestModel
from .base import Money, UtcDatetime, optional_utc
from .lesson import LessonResponse


class InvitationCreateRequest(StrictRequestModel):
    tutor_id: Optional[str] = None
    time_slot: Optional[str] = Field(None, description="ISO datetime of the requested lesson")
    payment_method: PaymentMethod = PaymentMethod.CARD
    special_needs: Optional[str] = Field(None, max_length=2000)
    topic_id: Optional[str] = None
    # Accepted for compatibility; the weekly grid is derived from timeSlot
    matching_hours: Optional[List[Any]] = None
    matching_days: Optional[List[Any]] = None

    @field_validator("special_needs")
    @classmethod
    def clean_special_needs(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class TopicBookableRequest(StrictRequestModel):
    topic_id: Optional[str] = None
    tutor_id: Optional[str] = None


class TopicBookableResponse(StrictModel):
    bookable: bool
    topic_id: Optional[str] = None
    topic_name: Optional[str] = None


class InvitationRespondRequest(StrictRequestModel):
    invitation_id: str
    accept: bool
    response: Optional[str] = Field(None, max_length=2000)
    force_accept: bool = False


class InvitationResponse(StrictModel):
    id: str
    student_id: str
    tutor_id: str
    subject_id: str
    topic_id: Optional[str] = None
    scheduled_at: UtcDatetime
    status: str
    sent_at: UtcDatetime
    expires_at: UtcDatetime
    responded_at: Optional[datetime] = None
    tutor_response: Optional[str] = None
    special_needs: Optional[str] = None
    payment_method: str
    amount: Money
    payment_status: Optional[str] = None

    @field_validator("responded_at")
    @classmethod
    def responded_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return optional_utc(v)


class InvitationCreateResponse(StrictModel):
    message: str
    invitation: InvitationResponse
    client_secret: Optional[str] = None


class InvitationRespondResponse(StrictModel):
    message: str
    invitation: InvitationResponse
    lesson: Optional[LessonResponse] = None
