from typing import Callable, Dict
from unittest.mock import Mock

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from schoolmaster.api.dependencies.database import get_db
from schoolmaster.api.dependencies.services import get_email_service, get_payment_service
from schoolmaster.auth import create_access_token
from schoolmaster.main import app
from schoolmaster.models.user import User


@pytest.fixture
def client(unit_db: Session, payment_service: Mock, email_service: Mock):
    """TestClient sharing the test's transactional session, with Stripe and email mocked."""

    def override_get_db():
        yield unit_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    app.dependency_overrides[get_email_service] = lambda: email_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token({"sub": user.email})
        return {"Authorization": f"Bearer {token}"}

    return _headers
