# backend/schoolmaster/services/balance_service.py
"""
Balance Service for the SchoolMaster platform.

Every wallet mutation locks the user row and appends a ledger row in the
same transaction, so ``users.balance`` always equals the last ledger
``balance_after`` for the main account.
"""

from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import MONEY_QUANTUM
from ..core.exceptions import BusinessRuleException, NotFoundException, ValidationException
from ..models.balance import BalanceAccount, BalanceTransaction, BalanceTransactionType
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS_MESSAGE = "Niewystarczające środki na koncie"


def to_money(value: Any) -> Decimal:
    """Quantize a numeric value to grosze."""
    return Decimal(str(value)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class BalanceService(BaseService):
    """Wallet reads and ledger-backed credits/debits."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.transaction_repository = RepositoryFactory.create_balance_transaction_repository(db)

    @BaseService.measure_operation("get_balance")
    def get_balance(self, user_id: str) -> Dict[str, Decimal]:
        user = self.user_repository.get_by_id(user_id)
        if not user:
            raise NotFoundException("Nie znaleziono użytkownika")
        return {
            "balance": to_money(user.balance),
            "loyalty_balance": to_money(user.loyalty_balance),
            "referral_balance": to_money(user.referral_balance),
        }

    @BaseService.measure_operation("list_transactions")
    def list_transactions(self, user_id: str, limit: int = 50) -> List[BalanceTransaction]:
        return self.transaction_repository.list_for_user(user_id, limit=limit)

    @BaseService.measure_operation("credit")
    def credit(
        self,
        user_id: str,
        amount: Decimal,
        tx_type: BalanceTransactionType,
        description: str,
        *,
        account: BalanceAccount = BalanceAccount.MAIN,
        lesson_id: Optional[str] = None,
        invitation_id: Optional[str] = None,
    ) -> BalanceTransaction:
        """Add money to one of the user's accounts."""
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationException("Kwota musi być dodatnia")
        with self.transaction():
            user = self._lock_user(user_id)
            return self._apply(
                user, account, amount, tx_type, description, lesson_id, invitation_id
            )

    @BaseService.measure_operation("debit")
    def debit(
        self,
        user_id: str,
        amount: Decimal,
        tx_type: BalanceTransactionType,
        description: str,
        *,
        allow_partial: bool = False,
        lesson_id: Optional[str] = None,
        invitation_id: Optional[str] = None,
    ) -> Optional[BalanceTransaction]:
        """
        Take money from the main balance.

        Args:
            allow_partial: take whatever is available instead of failing, so the
                balance is floored at zero

        Returns:
            Ledger row, or None when nothing was taken

        Raises:
            BusinessRuleException: insufficient funds and allow_partial is False
        """
        amount = to_money(amount)
        if amount <= 0:
            return None
        with self.transaction():
            user = self._lock_user(user_id)
            current = to_money(user.balance)
            if current < amount:
                if not allow_partial:
                    raise BusinessRuleException(
                        INSUFFICIENT_FUNDS_MESSAGE,
                        code="INSUFFICIENT_FUNDS",
                        details={"balance": str(current), "required": str(amount)},
                    )
                amount = current
            if amount <= 0:
                return None
            return self._apply(
                user,
                BalanceAccount.MAIN,
                -amount,
                tx_type,
                description,
                lesson_id,
                invitation_id,
            )

    def _lock_user(self, user_id: str) -> User:
        user = self.user_repository.get_for_update(user_id)
        if not user:
            raise NotFoundException("Nie znaleziono użytkownika")
        return user

    def _apply(
        self,
        user: User,
        account: BalanceAccount,
        signed_amount: Decimal,
        tx_type: BalanceTransactionType,
        description: str,
        lesson_id: Optional[str],
        invitation_id: Optional[str],
    ) -> BalanceTransaction:
        before = to_money(getattr(user, account.value) or 0)
        after = before + signed_amount
        setattr(user, account.value, after)
        entry = self.transaction_repository.create(
            user_id=user.id,
            account=account.value,
            type=tx_type.value,
            amount=signed_amount,
            balance_before=before,
            balance_after=after,
            description=description,
            lesson_id=lesson_id,
            invitation_id=invitation_id,
        )
        self.log_operation(
            "balance_change",
            user_id=user.id,
            account=account.value,
            amount=str(signed_amount),
            tx_type=tx_type.value,
        )
        return entry
