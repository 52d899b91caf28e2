# backend/schoolmaster/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token carries the user email; the user row is loaded per request
so deactivation and role changes apply immediately.
"""

import logging
from typing import Callable

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...core.enums import RoleName
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def get_current_active_user(
    current_user_email: str = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current active user.

    Raises:
        HTTPException: 401 when the account no longer exists, 400 when it is inactive
    """
    user = RepositoryFactory.create_user_repository(db).get_by_email(current_user_email)
    if user is None:
        logger.warning(f"Token subject has no account: {current_user_email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return user


def require_role(*roles: RoleName) -> Callable[..., User]:
    """Build a dependency that lets through only users holding one of ``roles``."""
    allowed = {role.value for role in roles}

    def dependency(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Brak dostępu")
        return current_user

    return dependency


require_student = require_role(RoleName.STUDENT)
require_tutor = require_role(RoleName.TUTOR, RoleName.ADMIN)
require_admin = require_role(RoleName.ADMIN)
