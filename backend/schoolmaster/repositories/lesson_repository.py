# backend/schoolmaster/repositories/lesson_repository.py
"""
Lesson Repository for the SchoolMaster platform.

Slot occupancy checks and the conditional insert that relies on the
``uq_lessons_tutor_active_slot`` partial unique index.
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.lesson import ACTIVE_LESSON_STATUSES, Lesson, LessonAction, LessonStatus
from .base_repository import BaseRepository


class LessonRepository(BaseRepository[Lesson]):
    def __init__(self, db: Session):
        super().__init__(db, Lesson)

    def insert_active(self, **kwargs: Any) -> Optional[Lesson]:
        """
        Insert a lesson that occupies its tutor slot.

        Runs inside a SAVEPOINT so a unique-slot violation only undoes this row.

        Returns:
            The new lesson, or None if the tutor already has an active lesson then
        """
        lesson = Lesson(**kwargs)
        try:
            with self.db.begin_nested():
                self.db.add(lesson)
        except IntegrityError:
            self.logger.warning(
                f"Slot already taken for tutor {kwargs.get('tutor_id')} at {kwargs.get('scheduled_at')}"
            )
            return None
        return lesson

    def move_active(self, lesson: Lesson) -> bool:
        """
        Flush a changed scheduled_at for an active lesson.

        Returns:
            False if the new slot collides with another active lesson
        """
        try:
            with self.db.begin_nested():
                self.db.flush([lesson])
        except IntegrityError:
            return False
        return True

    def get_active_for_tutor_at(self, tutor_id: str, when: datetime) -> Optional[Lesson]:
        return (
            self._build_query()
            .filter(
                Lesson.tutor_id == tutor_id,
                Lesson.scheduled_at == when,
                Lesson.status.in_(ACTIVE_LESSON_STATUSES),
            )
            .first()
        )

    def get_future_active_for_tutor(self, tutor_id: str, now: datetime) -> List[Lesson]:
        query = (
            self._build_query()
            .filter(
                Lesson.tutor_id == tutor_id,
                Lesson.scheduled_at >= now,
                Lesson.status.in_(ACTIVE_LESSON_STATUSES),
            )
            .order_by(Lesson.scheduled_at)
        )
        return self._execute_query(query)

    def has_active_for_student_topic(self, student_id: str, topic_id: Optional[str]) -> bool:
        return (
            self._build_query()
            .filter(
                Lesson.student_id == student_id,
                Lesson.topic_id == topic_id,
                Lesson.status.in_(ACTIVE_LESSON_STATUSES),
            )
            .first()
            is not None
        )

    def get_topic_ids_with_lessons(self, student_id: str, tutor_id: str) -> List[str]:
        """Topics the student has scheduled or completed lessons for with this tutor."""
        rows = (
            self.db.query(Lesson.topic_id)
            .filter(
                Lesson.student_id == student_id,
                Lesson.tutor_id == tutor_id,
                Lesson.topic_id.isnot(None),
                Lesson.status.in_((LessonStatus.SCHEDULED.value, LessonStatus.COMPLETED.value)),
            )
            .distinct()
            .all()
        )
        return [row[0] for row in rows]

    def add_action(self, **kwargs: Any) -> LessonAction:
        action = LessonAction(**kwargs)
        self.db.add(action)
        self.db.flush()
        return action
