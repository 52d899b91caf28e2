# backend/schoolmaster/services/availability_service.py
"""
Availability Service for the SchoolMaster platform.

Tutors publish a weekly recurring template of hourly slots in the platform
wall clock. A concrete moment is bookable when its (weekday, hour) is marked
available and no active lesson already occupies it.
"""

from datetime import datetime, timedelta
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from sqlalchemy.orm import Session

from ..core.constants import DAY_NAMES
from ..core.exceptions import ValidationException
from ..core.timezone_utils import ensure_utc, local_slot, to_local, utc_now
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

_HOUR_PATTERN = re.compile(r"^([01]\d|2[0-3]):00$")


def normalize_day(value: Union[int, str]) -> int:
    """Accept 0..6 (Sunday first) or an English day name."""
    if isinstance(value, bool):
        raise ValidationException(f"Nieprawidłowy dzień tygodnia: {value}")
    if isinstance(value, int):
        day = value
    elif isinstance(value, str) and value.strip().isdigit():
        day = int(value.strip())
    elif isinstance(value, str) and value.strip().lower() in DAY_NAMES:
        return DAY_NAMES.index(value.strip().lower())
    else:
        raise ValidationException(f"Nieprawidłowy dzień tygodnia: {value}")
    if not 0 <= day <= 6:
        raise ValidationException(f"Nieprawidłowy dzień tygodnia: {value}")
    return day


def normalize_hour(value: str) -> str:
    if not isinstance(value, str) or not _HOUR_PATTERN.match(value.strip()):
        raise ValidationException(f"Nieprawidłowa godzina: {value}")
    return value.strip()


class AvailabilityService(BaseService):
    """Weekly template reads/writes and slot checks."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_availability_repository(db)
        self.lesson_repository = RepositoryFactory.create_lesson_repository(db)

    @BaseService.measure_operation("get_availability")
    def get_availability(self, tutor_id: str) -> List[Dict[str, Any]]:
        return [
            {"day_of_week": slot.day_of_week, "hour": slot.hour, "is_available": slot.is_available}
            for slot in self.repository.get_for_tutor(tutor_id)
        ]

    @BaseService.measure_operation("set_availability")
    def set_availability(
        self, tutor_id: str, slots: Iterable[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """
        Replace the tutor's whole weekly template.

        Args:
            slots: dicts with day_of_week (int or day name), hour ("HH:00") and
                optional is_available (default True)

        Raises:
            ValidationException: malformed slot or duplicate (day, hour)
        """
        normalized: List[Tuple[int, str, bool]] = []
        seen: Set[Tuple[int, str]] = set()
        for slot in slots:
            day = normalize_day(slot.get("day_of_week"))
            hour = normalize_hour(slot.get("hour"))
            if (day, hour) in seen:
                raise ValidationException(
                    f"Zduplikowany termin: {DAY_NAMES[day]} {hour}",
                    code="DUPLICATE_SLOT",
                )
            seen.add((day, hour))
            normalized.append((day, hour, bool(slot.get("is_available", True))))

        with self.transaction():
            self.repository.replace_for_tutor(tutor_id, normalized)

        self.log_operation("set_availability", tutor_id=tutor_id, slot_count=len(normalized))
        return self.get_availability(tutor_id)

    @BaseService.measure_operation("get_booked_slots")
    def get_booked_slots(self, tutor_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Future slots held by pending or scheduled lessons."""
        booked = []
        for lesson in self.lesson_repository.get_future_active_for_tutor(tutor_id, now or utc_now()):
            day, hour = local_slot(lesson.scheduled_at)
            booked.append(
                {
                    "date": to_local(lesson.scheduled_at).date().isoformat(),
                    "day_of_week": day,
                    "hour": hour,
                }
            )
        return booked

    def get_student_topic_lessons(self, student_id: str, tutor_id: str) -> List[str]:
        return self.lesson_repository.get_topic_ids_with_lessons(student_id, tutor_id)

    def has_any_availability(self, tutor_id: str) -> bool:
        return self.repository.has_any_available(tutor_id)

    def is_slot_in_template(self, tutor_id: str, when: datetime) -> bool:
        day, hour = local_slot(when)
        return self.repository.is_slot_available(tutor_id, day, hour)

    def is_slot_occupied(self, tutor_id: str, when: datetime) -> bool:
        return self.lesson_repository.get_active_for_tutor_at(tutor_id, ensure_utc(when)) is not None

    @BaseService.measure_operation("is_tutor_available")
    def is_tutor_available(self, tutor_id: str, when: datetime) -> bool:
        return self.is_slot_in_template(tutor_id, when) and not self.is_slot_occupied(tutor_id, when)

    @BaseService.measure_operation("suggest_alternative_times")
    def suggest_alternative_times(
        self, tutor_id: str, around: datetime, limit: int = 3
    ) -> List[str]:
        """
        Next free template slots within 7 days after ``around``.

        Returns:
            ISO-8601 UTC timestamps
        """
        template = {
            (slot.day_of_week, slot.hour)
            for slot in self.repository.get_available_for_tutor(tutor_id)
        }
        if not template:
            return []

        now = utc_now()
        candidate = ensure_utc(around).replace(minute=0, second=0, microsecond=0)
        end = candidate + timedelta(days=7)
        suggestions: List[str] = []
        while candidate < end and len(suggestions) < limit:
            candidate += timedelta(hours=1)
            if candidate <= now:
                continue
            if local_slot(candidate) in template and not self.is_slot_occupied(tutor_id, candidate):
                suggestions.append(candidate.isoformat())
        return suggestions
