"""Wallet balance and ledger schemas."""

from datetime import datetime
from typing import Optional

from ._strict_base import StrictModel
from .base import Money, UtcDatetime


class BalanceResponse(StrictModel):
    balance: Money
    loyalty_balance: Money
    referral_balance: Money


class BalanceTransactionResponse(StrictModel):
    id: str
    account: str
    type: str
    amount: Money
    balance_before: Money
    balance_after: Money
    description: Optional[str] = None
    lesson_id: Optional[str] = None
    invitation_id: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
