# backend/schoolmaster/core/config.py
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME, DEFAULT_SUBJECT_ID, FIRST_TOPIC_ID


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)

_DEFAULT_SECRET_KEY = SecretStr("dev-only-secret-key-change-me")


class Settings(BaseSettings):
    environment: Literal["development", "testing", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    is_testing: bool = Field(default=False, alias="is_testing")
    brand_name: str = BRAND_NAME

    # Auth
    secret_key: SecretStr = Field(
        default=_DEFAULT_SECRET_KEY,
        validation_alias=AliasChoices("SESSION_SECRET", "SECRET_KEY"),
        description="Secret used to sign JWT access tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    # Database
    database_url: str = Field(
        default="sqlite:///./schoolmaster.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )

    # Celery / Redis
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        alias="STRIPE_SECRET_KEY",
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        alias="STRIPE_WEBHOOK_SECRET",
        description="Stripe webhook signing secret",
    )

    # Email
    resend_api_key: Optional[str] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: Optional[str] = Field(default=None, alias="SMTP_USER")
    smtp_password: Optional[SecretStr] = Field(default=None, alias="SMTP_PASSWORD")
    from_email: str = Field(
        default=f"{BRAND_NAME} <noreply@schoolmaster.pl>", alias="FROM_EMAIL"
    )
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Local wall clock used for the weekly availability grid
    timezone: str = Field(default="Europe/Warsaw", alias="APP_TIMEZONE")

    # Lesson pricing and booking windows
    lesson_price: Decimal = Decimal("100.00")
    lesson_currency: str = "pln"
    invitation_max_response_hours: int = 48
    invitation_lesson_buffer_hours: int = 2
    invitation_min_response_hours: int = 1
    reschedule_limit: int = 2
    default_topic_id: str = FIRST_TOPIC_ID
    default_subject_id: str = DEFAULT_SUBJECT_ID

    # Gamification and rewards
    topic_xp_reward: int = 50
    referral_bonus_amount: Decimal = Decimal("20.00")

    # Notifications
    unread_digest_cooldown_minutes: int = 60

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        # Heroku-style URLs use the deprecated postgres:// scheme
        if value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://") :]
        return value

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key.get_secret_value())

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
