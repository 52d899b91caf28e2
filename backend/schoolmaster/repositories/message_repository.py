# backend/schoolmaster/repositories/message_repository.py

from typing import List

from sqlalchemy.orm import Session, joinedload

from ..models.message import Message
from .base_repository import BaseRepository


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)

    def get_unread_for_recipient(self, recipient_id: str) -> List[Message]:
        """Unread messages, newest first, with senders loaded."""
        query = (
            self._build_query()
            .options(joinedload(Message.sender))
            .filter(Message.recipient_id == recipient_id, Message.read_at.is_(None))
            .order_by(Message.sent_at.desc())
        )
        return self._execute_query(query)
