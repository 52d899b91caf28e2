# backend/schoolmaster/models/message.py
"""Direct messages between users, including system messages about lessons."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base

MESSAGE_TYPE_TEXT = "text"
MESSAGE_TYPE_SYSTEM = "system"


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    sender_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    recipient_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default=MESSAGE_TYPE_TEXT)
    sent_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    read_at = Column(DateTime(timezone=True), nullable=True)

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    __table_args__ = (Index("ix_messages_recipient_unread", "recipient_id", "read_at"),)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.message_type:
            self.message_type = MESSAGE_TYPE_TEXT
        if self.sent_at is None:
            self.sent_at = datetime.now(timezone.utc)
