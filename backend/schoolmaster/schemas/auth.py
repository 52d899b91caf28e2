"""Authentication request and response schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import EmailStr

from ._strict_base import StrictModel
from .base import Money


class UserResponse(StrictModel):
    """Public view of the logged-in account."""

    id: str
    email: EmailStr
    first_name: str
    last_name: str
    role: str
    is_active: bool
    balance: Money = Decimal("0.00")
    loyalty_balance: Money = Decimal("0.00")
    referral_balance: Money = Decimal("0.00")
    xp: int = 0
    completed_lessons_count: int = 0
    loyalty_level: int = 1
    hourly_rate: Optional[Money] = None


class TokenResponse(StrictModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
