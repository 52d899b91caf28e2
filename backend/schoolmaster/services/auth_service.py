# backend/schoolmaster/services/auth_service.py
"""Password login and account lookup."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..auth import create_access_token, get_password_hash, verify_password
from ..core.exceptions import UnauthorizedException
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class AuthService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("authenticate")
    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Check credentials and issue a bearer token.

        Raises:
            UnauthorizedException: unknown email, wrong password or inactive account
        """
        user = self.user_repository.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            raise UnauthorizedException("Nieprawidłowy email lub hasło", code="INVALID_CREDENTIALS")
        if not user.is_active:
            raise UnauthorizedException("Konto jest nieaktywne", code="ACCOUNT_INACTIVE")

        token = create_access_token(data={"sub": user.email})
        self.log_operation("login", user_id=user.id)
        return {"access_token": token, "token_type": "bearer", "user": user}

    @BaseService.measure_operation("register_user")
    def register_user(self, email: str, password: str, first_name: str, last_name: str, **profile: Any) -> User:
        """Create an account with a bcrypt password hash."""
        with self.transaction():
            return self.user_repository.create(
                email=email.lower().strip(),
                hashed_password=get_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                **profile,
            )
