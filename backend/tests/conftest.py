# backend/tests/conftest.py
"""
Pytest configuration shared by every test package.

Environment is pinned BEFORE any schoolmaster import so settings never pick
up a developer's .env (real Stripe keys, Resend keys or a real database).
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["is_testing"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""
os.environ["SESSION_SECRET"] = "test-secret-key-for-jwt-signing"

# Never send real email from any test
import unittest.mock

global_resend_mock = unittest.mock.patch("resend.Emails.send")
mocked_send = global_resend_mock.start()
mocked_send.return_value = {"id": "test-email-id"}

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from schoolmaster.auth import get_password_hash
from schoolmaster.core.enums import RoleName
from schoolmaster.core.timezone_utils import local_slot
from schoolmaster.database import Base, enable_sqlite_savepoints

# Import models so Base.metadata is populated for create_all.
import schoolmaster.models  # noqa: F401
from schoolmaster.models.availability import TutorAvailabilitySlot
from schoolmaster.models.topic import Topic
from schoolmaster.models.user import User
from schoolmaster.services.email import EmailService
from schoolmaster.services.payment_service import PaymentService

TEST_PASSWORD = "Test1234!"
_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


def next_full_hour(hours_ahead: float) -> datetime:
    """An aware UTC datetime on a full hour, ``hours_ahead`` hours from now."""
    base = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    return base + timedelta(hours=hours_ahead)


@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture
def lesson_time() -> datetime:
    """A full-hour slot five days out."""
    return next_full_hour(5 * 24)


@pytest.fixture(scope="session")
def _unit_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def unit_db(_unit_engine) -> Session:
    """
    Provide a transactional session bound to the shared in-memory engine.

    Commits (fixtures and services alike) only release a savepoint; the
    outer transaction is rolled back after each test.
    """
    connection = _unit_engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def make_user(unit_db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(role: RoleName = RoleName.STUDENT, **overrides: Any) -> User:
        counter["n"] += 1
        values = {
            "email": f"{role.value}{counter['n']}@example.com",
            "hashed_password": _PASSWORD_HASH,
            "first_name": role.value.capitalize(),
            "last_name": f"Nr{counter['n']}",
            "role": role.value,
        }
        values.update(overrides)
        user = User(**values)
        unit_db.add(user)
        unit_db.commit()
        return user

    return _make


@pytest.fixture
def student(make_user) -> User:
    return make_user(RoleName.STUDENT, balance=Decimal("300.00"))


@pytest.fixture
def tutor(make_user) -> User:
    return make_user(
        RoleName.TUTOR,
        hourly_rate=Decimal("100.00"),
        gender="female",
        teaching_style="patient",
    )


@pytest.fixture
def admin(make_user) -> User:
    return make_user(RoleName.ADMIN)


@pytest.fixture
def topics(unit_db: Session) -> list:
    rows = [
        Topic(id="MAT-L01", name="Liczby i działania", order=1, xp_reward=50),
        Topic(id="MAT-L02", name="Wyrażenia algebraiczne", order=2, xp_reward=50),
        Topic(id="MAT-L03", name="Równania", order=3, xp_reward=60),
    ]
    unit_db.add_all(rows)
    unit_db.commit()
    return rows


@pytest.fixture
def open_slot(unit_db: Session) -> Callable[..., TutorAvailabilitySlot]:
    """Mark the weekly slot containing ``when`` as available for a tutor."""

    def _open(tutor: User, when, is_available: bool = True) -> TutorAvailabilitySlot:
        day, hour = local_slot(when)
        slot = TutorAvailabilitySlot(
            tutor_id=tutor.id, day_of_week=day, hour=hour, is_available=is_available
        )
        unit_db.add(slot)
        unit_db.commit()
        return slot

    return _open


@pytest.fixture
def payment_service() -> Mock:
    service = Mock(spec=PaymentService)
    service.authorize.return_value = {
        "payment_intent_id": "pi_test_123",
        "client_secret": "pi_test_123_secret",
        "status": "requires_payment_method",
    }
    service.capture.return_value = {"payment_intent_id": "pi_test_123", "status": "succeeded"}
    service.release.return_value = {"payment_intent_id": "pi_test_123", "status": "canceled"}
    service.refund.return_value = {"refund_id": "re_test_123", "status": "succeeded"}
    return service


@pytest.fixture
def email_service() -> Mock:
    service = Mock(spec=EmailService)
    service.send_email.return_value = {"id": "email-id"}
    return service


