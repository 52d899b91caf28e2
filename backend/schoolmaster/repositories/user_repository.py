# backend/schoolmaster/repositories/user_repository.py
"""User data access, including wallet row locks."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import RepositoryException
from ..models.message import Message
from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.find_one_by(email=email.lower().strip())

    def get_for_update(self, user_id: str) -> Optional[User]:
        """
        Load a user with a row lock for wallet mutation.

        On PostgreSQL this emits SELECT ... FOR UPDATE; SQLite serializes writers
        at the database level and ignores the clause.
        """
        try:
            # populate_existing would discard unflushed edits to the same row
            self.db.flush()
            return (
                self.db.query(User)
                .filter(User.id == user_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock user: {str(e)}")

    def list_active_tutors(self) -> List[User]:
        """Active tutors in creation order."""
        query = (
            self._build_query()
            .filter(User.role == RoleName.TUTOR.value, User.is_active.is_(True))
            .order_by(User.created_at, User.id)
        )
        return self._execute_query(query)

    def claim_notification_slot(self, user_id: str, cutoff: datetime, now: datetime) -> bool:
        """
        Stamp last_email_notification_at unless another worker already did
        after ``cutoff``.
        """
        try:
            updated = (
                self.db.query(User)
                .filter(
                    User.id == user_id,
                    or_(
                        User.last_email_notification_at.is_(None),
                        User.last_email_notification_at < cutoff,
                    ),
                )
                .update({"last_email_notification_at": now}, synchronize_session="fetch")
            )
            return updated == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error stamping notification time for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to update user: {str(e)}")

    def list_notification_candidates(self, cutoff: datetime) -> List[User]:
        """
        Active users with at least one unread message who were not emailed
        after ``cutoff``.
        """
        unread_exists = (
            self.db.query(Message.id)
            .filter(Message.recipient_id == User.id, Message.read_at.is_(None))
            .exists()
        )
        query = self._build_query().filter(
            User.is_active.is_(True),
            unread_exists,
            or_(
                User.last_email_notification_at.is_(None),
                User.last_email_notification_at < cutoff,
            ),
        )
        return self._execute_query(query)
