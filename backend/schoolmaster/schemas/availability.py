"""
Availability schemas for the weekly tutor template.

A slot is (day_of_week, "HH:00") with Sunday as day 0. Requests may name the
day ("monday") instead of giving its number.
"""

import datetime as dt
from typing import List, Union

from pydantic import Field, field_validator

from ._strict_base import StrictModel, StrictRequestModel


class AvailabilitySlotIn(StrictRequestModel):
    day_of_week: Union[int, str]
    hour: str
    is_available: bool = True

    @field_validator("hour")
    @classmethod
    def strip_hour(cls, v: str) -> str:
        return v.strip()


class AvailabilityUpdateRequest(StrictRequestModel):
    """Full replacement of a tutor's weekly template."""

    slots: List[AvailabilitySlotIn] = Field(default_factory=list)


class AvailabilitySlotResponse(StrictModel):
    day_of_week: int
    hour: str
    is_available: bool


class BookedSlotResponse(StrictModel):
    date: dt.date
    day_of_week: int
    hour: str


class TutorAvailabilityResponse(StrictModel):
    availability: List[AvailabilitySlotResponse]
    booked_slots: List[BookedSlotResponse]
    student_topic_lessons: List[str] = Field(default_factory=list)


class AvailabilityUpdateResponse(StrictModel):
    message: str
    availability: List[AvailabilitySlotResponse]
