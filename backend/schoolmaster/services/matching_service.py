# backend/schoolmaster/services/matching_service.py
"""
Tutor matching for students with saved preferences.

Score = number of the tutor's available slots on the student's preferred
days within [start_hour, end_hour), plus fixed bonuses:

    +5  gender matches (or the student has no preference)
    +5  teaching style matches (or no preference)
    +3  hourly rate within the student's budget (or no budget set)

Tutors with no overlapping slot are dropped.
"""

from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_MATCH_LIMIT, NO_PREFERENCE
from ..core.exceptions import NotFoundException
from ..models.matching import StudentMatchingPreference
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

GENDER_BONUS = 5
STYLE_BONUS = 5
RATE_BONUS = 3


def _preference_met(preference: Optional[str], actual: Optional[str]) -> bool:
    return not preference or preference == NO_PREFERENCE or preference == actual


def _hour_of(label: str) -> int:
    return int(label.split(":", 1)[0])


class MatchingService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.preference_repository = RepositoryFactory.create_matching_preference_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    def score_tutor(self, tutor: User, preference: StudentMatchingPreference) -> Dict[str, Any]:
        preferred_days = set(preference.preferred_days or [])
        overlap = sum(
            1
            for slot in self.availability_repository.get_available_for_tutor(tutor.id)
            if slot.day_of_week in preferred_days
            and preference.preferred_start_hour <= _hour_of(slot.hour) < preference.preferred_end_hour
        )

        score = overlap
        if _preference_met(preference.tutor_gender_preference, tutor.gender):
            score += GENDER_BONUS
        if _preference_met(preference.teaching_style_preference, tutor.teaching_style):
            score += STYLE_BONUS
        max_rate = preference.max_hourly_rate
        if max_rate is None or (
            tutor.hourly_rate is not None and Decimal(tutor.hourly_rate) <= Decimal(max_rate)
        ):
            score += RATE_BONUS

        return {"tutor": tutor, "score": score, "overlap": overlap}

    @BaseService.measure_operation("find_matches")
    def find_matches(self, student: User, limit: int = DEFAULT_MATCH_LIMIT) -> List[Dict[str, Any]]:
        """
        Best tutors for the student's active preferences.

        Raises:
            NotFoundException: the student has no active preferences
        """
        preference = self.preference_repository.get_active_for_student(student.id)
        if preference is None:
            raise NotFoundException(
                "Brak zapisanych preferencji dopasowania", code="NO_MATCHING_PREFERENCES"
            )

        max_rate = preference.max_hourly_rate
        candidates = []
        for tutor in self.user_repository.list_active_tutors():
            if max_rate is not None and tutor.hourly_rate is not None:
                if Decimal(tutor.hourly_rate) > Decimal(max_rate):
                    continue
            scored = self.score_tutor(tutor, preference)
            if scored["overlap"] > 0:
                candidates.append(scored)

        # sorted() is stable, so equal scores keep query order
        ranked = sorted(candidates, key=lambda item: item["score"], reverse=True)
        self.log_operation(
            "find_matches", student_id=student.id, candidates=len(candidates), limit=limit
        )
        return ranked[:limit]
