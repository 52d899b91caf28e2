"""
Database models for the SchoolMaster platform.

The models are organized by functionality:
- Users and wallets
- Tutor weekly availability
- Invitations and lessons
- Balance ledger
- Topics, progression and quizzes
- Referrals, messages and matching preferences
"""

from .availability import TutorAvailabilitySlot
from .balance import BalanceAccount, BalanceTransaction, BalanceTransactionType
from .invitation import INVITATION_TRANSITIONS, InvitationStatus, LessonInvitation
from .lesson import LESSON_TRANSITIONS, Lesson, LessonAction, LessonStatus
from .matching import StudentMatchingPreference
from .message import Message
from .quiz import Quiz, QuizAttempt, QuizQuestion
from .referral import Referral, ReferralStatus
from .topic import TOPIC_TRANSITIONS, Topic, TopicProgressStatus, TopicProgression
from .user import User

__all__ = [
    "BalanceAccount",
    "BalanceTransaction",
    "BalanceTransactionType",
    "INVITATION_TRANSITIONS",
    "InvitationStatus",
    "LESSON_TRANSITIONS",
    "Lesson",
    "LessonAction",
    "LessonInvitation",
    "LessonStatus",
    "Message",
    "Quiz",
    "QuizAttempt",
    "QuizQuestion",
    "Referral",
    "ReferralStatus",
    "StudentMatchingPreference",
    "TOPIC_TRANSITIONS",
    "Topic",
    "TopicProgressStatus",
    "TopicProgression",
    "TutorAvailabilitySlot",
    "User",
]
