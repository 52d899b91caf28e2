# backend/schoolmaster/models/balance.py
"""
Balance ledger.

Rows are append-only. ``users.balance`` is the cached running total; both
are written in the same transaction by BalanceService while the user row is
locked, so ``balance_after`` of the latest row always equals the cached value.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .base_enum import status_values


class BalanceTransactionType(str, Enum):
    DEPOSIT = "deposit"
    PAYMENT = "payment"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"
    REFERRAL_BONUS = "referral_bonus"
    LOYALTY_BONUS = "loyalty_bonus"


class BalanceAccount(str, Enum):
    """Which wallet column a ledger row moved."""

    MAIN = "balance"
    LOYALTY = "loyalty_balance"
    REFERRAL = "referral_balance"


class BalanceTransaction(Base):
    """Immutable ledger entry."""

    __tablename__ = "balance_transactions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    account = Column(String(20), nullable=False, default=BalanceAccount.MAIN.value)
    type = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    balance_before = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    lesson_id = Column(String(26), ForeignKey("lessons.id"), nullable=True)
    invitation_id = Column(String(26), ForeignKey("lesson_invitations.id"), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    user = relationship("User")

    __table_args__ = (
        CheckConstraint(
            f"type IN ({status_values(BalanceTransactionType)})", name="ck_balance_tx_type"
        ),
        CheckConstraint(
            f"account IN ({status_values(BalanceAccount)})", name="ck_balance_tx_account"
        ),
        CheckConstraint("balance_after = balance_before + amount", name="ck_balance_tx_fold"),
    )

    def __repr__(self) -> str:
        return (
            f"<BalanceTransaction {self.type} {self.amount} user={self.user_id} "
            f"{self.balance_before}->{self.balance_after}>"
        )
