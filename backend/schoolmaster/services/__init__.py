# backend/schoolmaster/services/__init__.py
"""
Service layer for the SchoolMaster platform.

Services own business rules and transaction boundaries; repositories only
query and write rows.
"""

from .auth_service import AuthService
from .availability_service import AvailabilityService
from .balance_service import BalanceService
from .base import BaseService
from .email import EmailService
from .invitation_service import InvitationService
from .lesson_service import LessonService
from .matching_service import MatchingService
from .notification_service import NotificationService
from .payment_service import PaymentService
from .progression_service import ProgressionService
from .quiz_service import QuizService
from .rewards_service import RewardsService

__all__ = [
    "AuthService",
    "AvailabilityService",
    "BalanceService",
    "BaseService",
    "EmailService",
    "InvitationService",
    "LessonService",
    "MatchingService",
    "NotificationService",
    "PaymentService",
    "ProgressionService",
    "QuizService",
    "RewardsService",
]
