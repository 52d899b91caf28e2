# backend/schoolmaster/repositories/referral_repository.py

from typing import Optional

from sqlalchemy.orm import Session

from ..models.referral import Referral, ReferralStatus
from .base_repository import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    def __init__(self, db: Session):
        super().__init__(db, Referral)

    def get_pending_for_referred(self, referred_id: str) -> Optional[Referral]:
        return self.find_one_by(referred_id=referred_id, status=ReferralStatus.PENDING.value)
