# backend/schoolmaster/repositories/factory.py
"""
Repository Factory for the SchoolMaster platform

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .balance_repository import BalanceTransactionRepository
    from .invitation_repository import InvitationRepository
    from .lesson_repository import LessonRepository
    from .matching_repository import MatchingPreferenceRepository
    from .message_repository import MessageRepository
    from .quiz_repository import QuizAttemptRepository, QuizRepository
    from .referral_repository import ReferralRepository
    from .topic_repository import TopicProgressionRepository, TopicRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can be tested with mocks.
    """

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for the tutor weekly template."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_invitation_repository(db: Session) -> "InvitationRepository":
        from .invitation_repository import InvitationRepository

        return InvitationRepository(db)

    @staticmethod
    def create_lesson_repository(db: Session) -> "LessonRepository":
        from .lesson_repository import LessonRepository

        return LessonRepository(db)

    @staticmethod
    def create_balance_transaction_repository(db: Session) -> "BalanceTransactionRepository":
        """Create repository for the wallet ledger."""
        from .balance_repository import BalanceTransactionRepository

        return BalanceTransactionRepository(db)

    @staticmethod
    def create_topic_repository(db: Session) -> "TopicRepository":
        from .topic_repository import TopicRepository

        return TopicRepository(db)

    @staticmethod
    def create_topic_progression_repository(db: Session) -> "TopicProgressionRepository":
        from .topic_repository import TopicProgressionRepository

        return TopicProgressionRepository(db)

    @staticmethod
    def create_referral_repository(db: Session) -> "ReferralRepository":
        from .referral_repository import ReferralRepository

        return ReferralRepository(db)

    @staticmethod
    def create_quiz_repository(db: Session) -> "QuizRepository":
        from .quiz_repository import QuizRepository

        return QuizRepository(db)

    @staticmethod
    def create_quiz_attempt_repository(db: Session) -> "QuizAttemptRepository":
        from .quiz_repository import QuizAttemptRepository

        return QuizAttemptRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> "MessageRepository":
        from .message_repository import MessageRepository

        return MessageRepository(db)

    @staticmethod
    def create_matching_preference_repository(db: Session) -> "MatchingPreferenceRepository":
        """Create repository for student matching preferences."""
        from .matching_repository import MatchingPreferenceRepository

        return MatchingPreferenceRepository(db)
