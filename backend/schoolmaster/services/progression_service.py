# backend/schoolmaster/services/progression_service.py
"""
Topic Progression Service for the SchoolMaster platform.

Topics unlock strictly in order. A student may book topic N once N - 1
topics are completed, and may hold only one open booking per topic.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import BusinessRuleException, NotFoundException
from ..models.topic import Topic, TopicProgression, TopicProgressStatus
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

TOPIC_LOCKED_MESSAGE = "Ten temat nie jest jeszcze dostępny do rezerwacji"
TOPIC_ALREADY_BOOKED_MESSAGE = (
    "Masz już zabookowaną lekcję do tego tematu. "
    "Nie możesz zarezerwować kolejnej, dopóki obecna się nie zakończy."
)


class ProgressionService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.topic_repository = RepositoryFactory.create_topic_repository(db)
        self.progression_repository = RepositoryFactory.create_topic_progression_repository(db)
        self.lesson_repository = RepositoryFactory.create_lesson_repository(db)

    def resolve_topic(self, student_id: str, topic_id: Optional[str] = None) -> Optional[Topic]:
        """
        Topic a booking refers to.

        Without an explicit id this is the first topic, by order, the student
        has not completed; when none qualifies, the default first topic.
        """
        if topic_id:
            topic = self.topic_repository.get_by_id(topic_id)
            if not topic:
                raise NotFoundException("Nie znaleziono tematu")
            return topic

        completed = {
            progression.topic_id
            for progression in self.progression_repository.list_for_student(student_id)
            if progression.status == TopicProgressStatus.COMPLETED
        }
        for topic in self.topic_repository.list_ordered():
            if topic.id not in completed:
                return topic
        return self.topic_repository.get_by_id(settings.default_topic_id)

    @BaseService.measure_operation("ensure_topic_bookable")
    def ensure_bookable(self, student_id: str, topic: Optional[Topic]) -> None:
        """
        Raises:
            BusinessRuleException: topic still locked, or already booked
        """
        if topic is None:
            return

        completed_count = self.progression_repository.count_completed(student_id)
        if topic.order > completed_count + 1:
            raise BusinessRuleException(TOPIC_LOCKED_MESSAGE, code="TOPIC_LOCKED")

        progression = self.progression_repository.get_for_student(student_id, topic.id)
        already_booked = (
            progression is not None and progression.status == TopicProgressStatus.IN_PROGRESS
        ) or self.lesson_repository.has_active_for_student_topic(student_id, topic.id)
        if already_booked:
            raise BusinessRuleException(TOPIC_ALREADY_BOOKED_MESSAGE, code="TOPIC_ALREADY_BOOKED")

    def mark_in_progress(self, student_id: str, topic_id: Optional[str]) -> Optional[TopicProgression]:
        """Booked topic moves to in_progress; completed topics are left alone."""
        if not topic_id:
            return None
        progression = self.progression_repository.get_or_create(student_id, topic_id)
        if progression.status in (TopicProgressStatus.LOCKED, TopicProgressStatus.AVAILABLE):
            progression.transition_to(TopicProgressStatus.IN_PROGRESS)
        return progression

    def revert_to_available(self, student_id: str, topic_id: Optional[str]) -> None:
        """A cancelled lesson frees the topic for a new booking."""
        if not topic_id:
            return
        progression = self.progression_repository.get_for_student(student_id, topic_id)
        if progression is not None and progression.status == TopicProgressStatus.IN_PROGRESS:
            progression.transition_to(TopicProgressStatus.AVAILABLE)

    @BaseService.measure_operation("complete_topic")
    def complete_topic(self, student: User, topic_id: Optional[str]) -> int:
        """
        Mark the topic completed and unlock the next one.

        Topic XP is paid only the first time, guarded by xp_awarded.

        Returns:
            XP granted by this call
        """
        if not topic_id:
            return 0
        topic = self.topic_repository.get_by_id(topic_id)
        progression = self.progression_repository.get_or_create(student.id, topic_id)

        if progression.status in (TopicProgressStatus.LOCKED, TopicProgressStatus.AVAILABLE):
            progression.transition_to(TopicProgressStatus.IN_PROGRESS)
        progression.transition_to(TopicProgressStatus.COMPLETED)

        xp_granted = 0
        if not progression.xp_awarded:
            xp_granted = topic.xp_reward if topic and topic.xp_reward else settings.topic_xp_reward
            student.xp = (student.xp or 0) + xp_granted
            progression.xp_awarded = True
            self.log_operation("topic_xp_awarded", student_id=student.id, topic_id=topic_id, xp=xp_granted)

        if topic is not None:
            next_topic = self.topic_repository.get_next(topic)
            if next_topic is not None:
                upcoming = self.progression_repository.get_or_create(student.id, next_topic.id)
                if upcoming.status == TopicProgressStatus.LOCKED:
                    upcoming.transition_to(TopicProgressStatus.AVAILABLE)

        self.progression_repository.flush()
        return xp_granted
