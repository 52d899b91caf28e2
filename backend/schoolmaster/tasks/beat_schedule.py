# backend/schoolmaster/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for SchoolMaster.

Both sweeps claim rows one by one, so overlapping runs never double-process.
"""

from datetime import timedelta
from typing import Any

from celery.schedules import crontab

CELERYBEAT_SCHEDULE = {
    # Pending invitations past their deadline - top of every hour
    "expire-stale-invitations": {
        "task": "schoolmaster.tasks.invitation_tasks.expire_stale_invitations",
        "schedule": crontab(minute=0),
        "options": {"queue": "invitations", "priority": 5},
    },
    # Unread message digest - every 2 hours
    "send-unread-message-digests": {
        "task": "schoolmaster.tasks.notification_tasks.send_unread_message_digests",
        "schedule": crontab(minute=15, hour="*/2"),
        "options": {"queue": "notifications", "priority": 3},
    },
}

SCHEDULE_CONFIG = {
    "production": CELERYBEAT_SCHEDULE,
    "development": {
        "expire-stale-invitations": {
            "task": "schoolmaster.tasks.invitation_tasks.expire_stale_invitations",
            "schedule": timedelta(minutes=5),
            "options": {"queue": "invitations"},
        },
    },
}


def get_beat_schedule(environment: str = "production") -> dict[str, dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development, testing)

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    if environment == "testing":
        return {}
    base: dict[str, dict[str, Any]] = dict(CELERYBEAT_SCHEDULE)
    overrides = SCHEDULE_CONFIG.get(environment)
    if overrides and overrides is not CELERYBEAT_SCHEDULE:
        base.update(overrides)
    return base
