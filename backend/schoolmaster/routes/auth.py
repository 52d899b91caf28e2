# backend/schoolmaster/routes/auth.py
"""
Authentication routes.

Router Endpoints:
    POST /login - Exchange email and password for a bearer token
    GET /me - Current account
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from ..api.dependencies import get_auth_service, get_current_active_user
from ..core.exceptions import DomainException, handle_domain_exception
from ..models.user import User
from ..schemas.auth import TokenResponse, UserResponse
from ..services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Login with email and password.

    Args:
        form_data: OAuth2 form with username (the email) and password
    """
    try:
        result = auth_service.authenticate(
            email=form_data.username.lower().strip(),
            password=form_data.password,
        )
    except DomainException as e:
        logger.info(f"Failed login for {form_data.username}: {e.code}")
        handle_domain_exception(e)

    return TokenResponse(
        access_token=result["access_token"],
        token_type=result["token_type"],
        user=UserResponse.model_validate(result["user"]),
    )


@router.get("/me", response_model=UserResponse)
def read_users_me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)
