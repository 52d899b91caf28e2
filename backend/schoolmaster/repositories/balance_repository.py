# backend/schoolmaster/repositories/balance_repository.py
"""Append-only ledger of wallet movements."""

from typing import List

from sqlalchemy.orm import Session

from ..models.balance import BalanceTransaction
from .base_repository import BaseRepository


class BalanceTransactionRepository(BaseRepository[BalanceTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, BalanceTransaction)

    def list_for_user(self, user_id: str, limit: int = 50) -> List[BalanceTransaction]:
        query = (
            self._build_query()
            .filter(BalanceTransaction.user_id == user_id)
            .order_by(BalanceTransaction.created_at.desc(), BalanceTransaction.id.desc())
            .limit(limit)
        )
        return self._execute_query(query)
