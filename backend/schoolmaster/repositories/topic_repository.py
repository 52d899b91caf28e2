# backend/schoolmaster/repositories/topic_repository.py
"""
Topic Repository for the SchoolMaster platform.

Covers the ordered curriculum and each student's progression through it.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.topic import Topic, TopicProgression, TopicProgressStatus
from .base_repository import BaseRepository


class TopicRepository(BaseRepository[Topic]):
    def __init__(self, db: Session):
        super().__init__(db, Topic)

    def list_ordered(self, subject_id: Optional[str] = None) -> List[Topic]:
        query = self._build_query()
        if subject_id:
            query = query.filter(Topic.subject_id == subject_id)
        return self._execute_query(query.order_by(Topic.order))

    def get_next(self, topic: Topic) -> Optional[Topic]:
        return (
            self._build_query()
            .filter(Topic.order > topic.order)
            .order_by(Topic.order)
            .first()
        )


class TopicProgressionRepository(BaseRepository[TopicProgression]):
    def __init__(self, db: Session):
        super().__init__(db, TopicProgression)

    def get_for_student(self, student_id: str, topic_id: str) -> Optional[TopicProgression]:
        return self.find_one_by(student_id=student_id, topic_id=topic_id)

    def get_or_create(
        self,
        student_id: str,
        topic_id: str,
        status: TopicProgressStatus = TopicProgressStatus.LOCKED,
    ) -> TopicProgression:
        progression = self.get_for_student(student_id, topic_id)
        if progression is None:
            progression = self.create(
                student_id=student_id, topic_id=topic_id, status=status.value
            )
        return progression

    def list_for_student(self, student_id: str) -> List[TopicProgression]:
        query = self._build_query().filter(TopicProgression.student_id == student_id)
        return self._execute_query(query)

    def count_completed(self, student_id: str) -> int:
        return self.count(student_id=student_id, status=TopicProgressStatus.COMPLETED.value)
