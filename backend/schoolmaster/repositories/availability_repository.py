# backend/schoolmaster/repositories/availability_repository.py
"""
Availability Repository for the SchoolMaster platform.

Data access for the tutor weekly template (tutor_hourly_availability).
"""

from typing import Iterable, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import TutorAvailabilitySlot
from .base_repository import BaseRepository


class AvailabilityRepository(BaseRepository[TutorAvailabilitySlot]):
    def __init__(self, db: Session):
        super().__init__(db, TutorAvailabilitySlot)

    def get_for_tutor(self, tutor_id: str) -> List[TutorAvailabilitySlot]:
        query = (
            self._build_query()
            .filter(TutorAvailabilitySlot.tutor_id == tutor_id)
            .order_by(TutorAvailabilitySlot.day_of_week, TutorAvailabilitySlot.hour)
        )
        return self._execute_query(query)

    def get_available_for_tutor(self, tutor_id: str) -> List[TutorAvailabilitySlot]:
        query = (
            self._build_query()
            .filter(
                TutorAvailabilitySlot.tutor_id == tutor_id,
                TutorAvailabilitySlot.is_available.is_(True),
            )
            .order_by(TutorAvailabilitySlot.day_of_week, TutorAvailabilitySlot.hour)
        )
        return self._execute_query(query)

    def replace_for_tutor(
        self, tutor_id: str, slots: Iterable[Tuple[int, str, bool]]
    ) -> List[TutorAvailabilitySlot]:
        """
        Delete the tutor's whole template and insert ``slots``.

        Args:
            slots: (day_of_week, hour, is_available) tuples
        """
        try:
            self.db.query(TutorAvailabilitySlot).filter(
                TutorAvailabilitySlot.tutor_id == tutor_id
            ).delete(synchronize_session=False)
            self.db.flush()
            rows = [
                TutorAvailabilitySlot(
                    tutor_id=tutor_id, day_of_week=day, hour=hour, is_available=available
                )
                for day, hour, available in slots
            ]
            self.db.add_all(rows)
            self.db.flush()
            return rows
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing availability for tutor {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to replace availability: {str(e)}")

    def is_slot_available(self, tutor_id: str, day_of_week: int, hour: str) -> bool:
        return self.exists(
            tutor_id=tutor_id, day_of_week=day_of_week, hour=hour, is_available=True
        )

    def has_any_available(self, tutor_id: str) -> bool:
        return self.exists(tutor_id=tutor_id, is_available=True)
