# backend/schoolmaster/tasks/notification_tasks.py
"""Unread message digest emails."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..services.notification_service import NotificationService
from .celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True, max_retries=3, name="schoolmaster.tasks.notification_tasks.send_unread_message_digests"
)
def send_unread_message_digests(self: Any) -> Dict[str, int]:
    db: Session = SessionLocal()
    try:
        stats = NotificationService(db).send_unread_digests()
        logger.info(f"Unread digest sweep finished: {stats}")
        return stats
    finally:
        db.close()
