# backend/schoolmaster/repositories/matching_repository.py

from typing import Optional

from sqlalchemy.orm import Session

from ..models.matching import StudentMatchingPreference
from .base_repository import BaseRepository


class MatchingPreferenceRepository(BaseRepository[StudentMatchingPreference]):
    def __init__(self, db: Session):
        super().__init__(db, StudentMatchingPreference)

    def get_active_for_student(self, student_id: str) -> Optional[StudentMatchingPreference]:
        return (
            self._build_query()
            .filter(
                StudentMatchingPreference.student_id == student_id,
                StudentMatchingPreference.is_active.is_(True),
            )
            .order_by(StudentMatchingPreference.created_at.desc())
            .first()
        )
