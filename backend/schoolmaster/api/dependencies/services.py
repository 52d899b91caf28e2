# backend/schoolmaster/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.auth_service import AuthService
from ...services.availability_service import AvailabilityService
from ...services.balance_service import BalanceService
from ...services.email import EmailService
from ...services.invitation_service import InvitationService
from ...services.lesson_service import LessonService
from ...services.matching_service import MatchingService
from ...services.notification_service import NotificationService
from ...services.payment_service import PaymentService
from ...services.progression_service import ProgressionService
from ...services.quiz_service import QuizService
from ...services.rewards_service import RewardsService
from .database import get_db


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_email_service(db: Session = Depends(get_db)) -> EmailService:
    """Get EmailService instance with proper dependencies."""
    return EmailService(db)


def get_notification_service(
    db: Session = Depends(get_db), email_service: EmailService = Depends(get_email_service)
) -> NotificationService:
    """
    Get notification service instance.

    Args:
        db: Database session
        email_service: Email service for sending emails

    Returns:
        NotificationService instance
    """
    return NotificationService(db, email_service)


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_balance_service(db: Session = Depends(get_db)) -> BalanceService:
    return BalanceService(db)


def get_progression_service(db: Session = Depends(get_db)) -> ProgressionService:
    return ProgressionService(db)


def get_invitation_service(
    db: Session = Depends(get_db),
    payment_service: PaymentService = Depends(get_payment_service),
    notification_service: NotificationService = Depends(get_notification_service),
    availability_service: AvailabilityService = Depends(get_availability_service),
    balance_service: BalanceService = Depends(get_balance_service),
    progression_service: ProgressionService = Depends(get_progression_service),
) -> InvitationService:
    """
    Get invitation service instance with all dependencies.

    Returns:
        InvitationService instance sharing the request session
    """
    return InvitationService(
        db,
        payment_service,
        notification_service,
        availability_service,
        balance_service,
        progression_service,
    )


def get_lesson_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
    availability_service: AvailabilityService = Depends(get_availability_service),
    balance_service: BalanceService = Depends(get_balance_service),
    progression_service: ProgressionService = Depends(get_progression_service),
) -> LessonService:
    """
    Get lesson service instance with all dependencies.

    Returns:
        LessonService instance sharing the request session
    """
    return LessonService(
        db,
        notification_service,
        availability_service,
        balance_service,
        progression_service,
        RewardsService(db, balance_service),
    )


def get_matching_service(db: Session = Depends(get_db)) -> MatchingService:
    return MatchingService(db)


def get_quiz_service(db: Session = Depends(get_db)) -> QuizService:
    return QuizService(db)
