# backend/schoolmaster/tasks/invitation_tasks.py
"""Invitation expiry sweep."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..services.invitation_service import InvitationService
from .celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True, max_retries=3, name="schoolmaster.tasks.invitation_tasks.expire_stale_invitations"
)
def expire_stale_invitations(self: Any, limit: int = 500) -> Dict[str, int]:
    """
    Expire pending invitations past ``expires_at`` and release their payment holds.

    Returns:
        Dict with processed/expired/skipped/failed counts
    """
    db: Session = SessionLocal()
    try:
        stats = InvitationService(db).expire_stale_invitations(limit=limit)
        logger.info(f"Invitation expiry sweep finished: {stats}")
        return stats
    finally:
        db.close()
