# backend/schoolmaster/repositories/__init__.py
"""
Repository layer for the SchoolMaster platform.

Repositories own queries and row-level writes; services own transactions.

Usage:
    from schoolmaster.repositories import RepositoryFactory

    lessons = RepositoryFactory.create_lesson_repository(db)
    lesson = lessons.get_active_for_tutor_at(tutor_id, scheduled_at)
"""

from .availability_repository import AvailabilityRepository
from .balance_repository import BalanceTransactionRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .invitation_repository import InvitationRepository
from .lesson_repository import LessonRepository
from .matching_repository import MatchingPreferenceRepository
from .message_repository import MessageRepository
from .quiz_repository import QuizAttemptRepository, QuizRepository
from .referral_repository import ReferralRepository
from .topic_repository import TopicProgressionRepository, TopicRepository
from .user_repository import UserRepository

__all__ = [
    "AvailabilityRepository",
    "BalanceTransactionRepository",
    "BaseRepository",
    "InvitationRepository",
    "LessonRepository",
    "MatchingPreferenceRepository",
    "MessageRepository",
    "QuizAttemptRepository",
    "QuizRepository",
    "ReferralRepository",
    "RepositoryFactory",
    "TopicProgressionRepository",
    "TopicRepository",
    "UserRepository",
]
