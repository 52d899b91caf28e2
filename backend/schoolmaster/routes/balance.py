# backend/schoolmaster/routes/balance.py
"""
Wallet routes.

Router Endpoints:
    GET / - Main, loyalty and referral balances
    GET /transactions - Ledger, newest first
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_balance_service, get_current_active_user
from ..models.user import User
from ..schemas.balance import BalanceResponse, BalanceTransactionResponse
from ..services.balance_service import BalanceService

router = APIRouter(prefix="/api/balance", tags=["balance"])


@router.get("", response_model=BalanceResponse)
def get_balance(
    current_user: User = Depends(get_current_active_user),
    balance_service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    return BalanceResponse(**balance_service.get_balance(current_user.id))


@router.get("/transactions", response_model=List[BalanceTransactionResponse])
def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_active_user),
    balance_service: BalanceService = Depends(get_balance_service),
) -> List[BalanceTransactionResponse]:
    return [
        BalanceTransactionResponse.model_validate(tx)
        for tx in balance_service.list_transactions(current_user.id, limit=limit)
    ]
