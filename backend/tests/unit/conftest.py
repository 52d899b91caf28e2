from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session

from schoolmaster.services.invitation_service import InvitationService
from schoolmaster.services.lesson_service import LessonService
from schoolmaster.services.notification_service import NotificationService


@pytest.fixture
def notification_service(unit_db: Session, email_service: Mock) -> NotificationService:
    return NotificationService(unit_db, email_service)


@pytest.fixture
def invitation_service(
    unit_db: Session, payment_service: Mock, notification_service: NotificationService
) -> InvitationService:
    return InvitationService(unit_db, payment_service, notification_service)


@pytest.fixture
def lesson_service(unit_db: Session, notification_service: NotificationService) -> LessonService:
    return LessonService(unit_db, notification_service)
