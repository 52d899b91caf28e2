# backend/schoolmaster/repositories/invitation_repository.py
"""Data access for lesson invitations."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session, joinedload

from ..models.invitation import InvitationStatus, LessonInvitation
from .base_repository import BaseRepository


class InvitationRepository(BaseRepository[LessonInvitation]):
    def __init__(self, db: Session):
        super().__init__(db, LessonInvitation)

    def get_with_parties(self, invitation_id: str) -> Optional[LessonInvitation]:
        query = (
            self._build_query()
            .options(
                joinedload(LessonInvitation.student),
                joinedload(LessonInvitation.tutor),
                joinedload(LessonInvitation.topic),
            )
            .filter(LessonInvitation.id == invitation_id)
        )
        return query.first()

    def get_pending_for_student_topic(
        self, student_id: str, topic_id: Optional[str]
    ) -> List[LessonInvitation]:
        query = self._build_query().filter(
            LessonInvitation.student_id == student_id,
            LessonInvitation.topic_id == topic_id,
            LessonInvitation.status == InvitationStatus.PENDING.value,
        )
        return self._execute_query(query)

    def get_other_pending_for_student(
        self, student_id: str, exclude_id: str
    ) -> List[LessonInvitation]:
        query = self._build_query().filter(
            LessonInvitation.student_id == student_id,
            LessonInvitation.id != exclude_id,
            LessonInvitation.status == InvitationStatus.PENDING.value,
        )
        return self._execute_query(query)

    def get_expired_pending(self, now: datetime, limit: int = 500) -> List[LessonInvitation]:
        """Pending invitations whose deadline passed, oldest first."""
        query = (
            self._build_query()
            .filter(
                LessonInvitation.status == InvitationStatus.PENDING.value,
                LessonInvitation.expires_at < now,
            )
            .order_by(LessonInvitation.expires_at)
            .limit(limit)
        )
        return self._execute_query(query)

    def list_for_student(self, student_id: str) -> List[LessonInvitation]:
        return self._list_for(LessonInvitation.student_id == student_id)

    def list_for_tutor(self, tutor_id: str) -> List[LessonInvitation]:
        return self._list_for(LessonInvitation.tutor_id == tutor_id)

    def _list_for(self, criterion) -> List[LessonInvitation]:
        pending_first = case(
            (LessonInvitation.status == InvitationStatus.PENDING.value, 0), else_=1
        )
        query = (
            self._build_query()
            .filter(criterion)
            .order_by(pending_first, LessonInvitation.sent_at.desc())
        )
        return self._execute_query(query)
