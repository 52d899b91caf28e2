# backend/schoolmaster/services/notification_service.py
"""
Notification Service for the SchoolMaster platform.

Emails and in-app system messages around the lesson lifecycle, plus the
periodic unread-message digest. Email failures are logged and never fail
the operation that triggered them.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..core.timezone_utils import to_local, utc_now
from ..models.invitation import LessonInvitation
from ..models.lesson import Lesson
from ..models.message import MESSAGE_TYPE_SYSTEM, Message
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from . import notification_templates as templates
from .base import BaseService
from .email import EmailService

logger = logging.getLogger(__name__)


def format_lesson_time(value: datetime) -> str:
    return to_local(value).strftime("%d.%m.%Y %H:%M")


class NotificationService(BaseService):
    """Best-effort email notifications and system messages."""

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        super().__init__(db)
        self.email_service = email_service or EmailService(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.message_repository = RepositoryFactory.create_message_repository(db)

    def _deliver(self, to_email: str, content: templates.EmailContent) -> bool:
        try:
            self.email_service.send_email(
                to_email=to_email,
                subject=content.subject,
                html_content=content.html,
                text_content=content.text,
            )
            return True
        except ServiceException as e:
            self.logger.error(f"Notification email to {to_email} failed: {e.message}")
            return False

    def send_system_message(self, sender_id: str, recipient_id: str, content: str) -> Message:
        """Queue an in-app message; persisted with the caller's transaction."""
        return self.message_repository.create(
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            message_type=MESSAGE_TYPE_SYSTEM,
        )

    @BaseService.measure_operation("notify_invitation_created")
    def notify_invitation_created(self, invitation: LessonInvitation) -> bool:
        tutor, student = invitation.tutor, invitation.student
        topic_name = invitation.topic.name if invitation.topic else "Matematyka"
        content = templates.invitation_created(
            tutor.first_name, student.full_name, topic_name, format_lesson_time(invitation.scheduled_at)
        )
        return self._deliver(tutor.email, content)

    @BaseService.measure_operation("notify_invitation_accepted")
    def notify_invitation_accepted(self, invitation: LessonInvitation, lesson: Lesson) -> bool:
        content = templates.invitation_accepted(
            invitation.student.first_name,
            invitation.tutor.full_name,
            lesson.title,
            format_lesson_time(lesson.scheduled_at),
        )
        return self._deliver(invitation.student.email, content)

    @BaseService.measure_operation("notify_invitation_rejected")
    def notify_invitation_rejected(self, invitation: LessonInvitation, note: Optional[str]) -> bool:
        topic_name = invitation.topic.name if invitation.topic else "Matematyka"
        content = templates.invitation_rejected(
            invitation.student.first_name, invitation.tutor.full_name, topic_name, note
        )
        return self._deliver(invitation.student.email, content)

    @BaseService.measure_operation("notify_lesson_cancelled")
    def notify_lesson_cancelled(self, lesson: Lesson, cancelled_by: User) -> bool:
        recipient = lesson.tutor if cancelled_by.id == lesson.student_id else lesson.student
        if recipient is None:
            return False
        content = templates.lesson_cancelled(
            recipient.first_name,
            lesson.title,
            format_lesson_time(lesson.scheduled_at),
            cancelled_by.full_name,
            lesson.cancellation_reason,
        )
        return self._deliver(recipient.email, content)

    @BaseService.measure_operation("notify_referral_bonus")
    def notify_referral_bonus(self, referrer: User, referred: User, bonus_amount: Any) -> bool:
        content = templates.referral_bonus(referrer.first_name, f"{bonus_amount}", referred.full_name)
        return self._deliver(referrer.email, content)

    @BaseService.measure_operation("send_unread_digests")
    def send_unread_digests(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Email every user with unread messages who was not emailed recently.

        Each user is claimed by a conditional update of
        last_email_notification_at before sending, so overlapping runs send
        at most one digest per cooldown window.
        """
        now = now or utc_now()
        cutoff = now - timedelta(minutes=settings.unread_digest_cooldown_minutes)
        stats = {"candidates": 0, "sent": 0, "failed": 0, "skipped": 0}

        for user in self.user_repository.list_notification_candidates(cutoff):
            stats["candidates"] += 1
            unread = self.message_repository.get_unread_for_recipient(user.id)
            if not unread:
                stats["skipped"] += 1
                continue

            with self.transaction():
                claimed = self.user_repository.claim_notification_slot(user.id, cutoff, now)
            if not claimed:
                stats["skipped"] += 1
                continue

            latest = unread[0]
            sender_name = latest.sender.full_name if latest.sender else settings.brand_name
            content = templates.unread_messages(
                user.first_name, len(unread), sender_name, templates.message_preview(latest.content)
            )
            if self._deliver(user.email, content):
                stats["sent"] += 1
            else:
                stats["failed"] += 1

        self.log_operation("send_unread_digests", **stats)
        return stats
