"""Tutor match results."""

from typing import Optional

from ._strict_base import StrictModel
from .base import Money


class TutorMatchResponse(StrictModel):
    tutor_id: str
    first_name: str
    last_name: str
    hourly_rate: Optional[Money] = None
    rating: Optional[Money] = None
    teaching_style: Optional[str] = None
    score: int
    overlap: int
