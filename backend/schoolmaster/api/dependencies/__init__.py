# backend/schoolmaster/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_current_active_user,
    get_current_user,
    require_admin,
    require_role,
    require_student,
    require_tutor,
)
from .database import get_db
from .services import (
    get_auth_service,
    get_availability_service,
    get_balance_service,
    get_invitation_service,
    get_lesson_service,
    get_matching_service,
    get_notification_service,
    get_quiz_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_active_user",
    "require_role",
    "require_student",
    "require_tutor",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_auth_service",
    "get_availability_service",
    "get_balance_service",
    "get_invitation_service",
    "get_lesson_service",
    "get_matching_service",
    "get_notification_service",
    "get_quiz_service",
]
