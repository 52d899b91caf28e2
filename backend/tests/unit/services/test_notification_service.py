from datetime import datetime, timedelta, timezone

import pytest

from schoolmaster.core.enums import RoleName
from schoolmaster.core.exceptions import ServiceException
from schoolmaster.models.message import Message
from schoolmaster.services import notification_templates as templates


def _message(db, sender, recipient, content="Dzień dobry", **overrides):
    message = Message(sender_id=sender.id, recipient_id=recipient.id, content=content, **overrides)
    db.add(message)
    db.commit()
    return message


class TestTemplates:
    @pytest.mark.parametrize(
        "count,phrase",
        [(1, "nową wiadomość"), (2, "nowe wiadomości"), (4, "nowe wiadomości"), (5, "nowych wiadomości")],
    )
    def test_unread_messages_phrase(self, count, phrase):
        assert templates.unread_messages_phrase(count) == phrase

    def test_message_preview_truncates_long_content(self):
        assert templates.message_preview("krótko") == "krótko"
        preview = templates.message_preview("x" * 250)
        assert len(preview) == 100
        assert preview.endswith("...")

    def test_digest_subject(self):
        content = templates.unread_messages("Ola", 3, "Pan Marek", "Do jutra")
        assert content.subject.startswith("Masz 3 nowe wiadomości")
        assert "Pan Marek" in content.text

    def test_rejection_email_includes_note(self):
        content = templates.invitation_rejected("Ola", "Anna Nowak", "Równania", "Brak terminów")
        assert "Brak terminów" in content.html


class TestUnreadDigests:
    def test_sends_one_digest_per_user(self, notification_service, email_service, unit_db, student, tutor):
        _message(unit_db, tutor, student, "Pierwsza")
        _message(unit_db, tutor, student, "Druga")

        stats = notification_service.send_unread_digests()

        assert stats == {"candidates": 1, "sent": 1, "failed": 0, "skipped": 0}
        email_service.send_email.assert_called_once()
        kwargs = email_service.send_email.call_args.kwargs
        assert kwargs["to_email"] == student.email
        assert "2 nowe wiadomości" in kwargs["subject"]
        assert student.last_email_notification_at is not None

    def test_cooldown_prevents_repeat(self, notification_service, email_service, unit_db, student, tutor):
        _message(unit_db, tutor, student)
        now = datetime.now(timezone.utc)

        notification_service.send_unread_digests(now=now)
        again = notification_service.send_unread_digests(now=now + timedelta(minutes=30))
        later = notification_service.send_unread_digests(now=now + timedelta(minutes=61))

        assert again["candidates"] == 0
        assert later["sent"] == 1
        assert email_service.send_email.call_count == 2

    def test_read_messages_do_not_count(self, notification_service, email_service, unit_db, student, tutor):
        _message(unit_db, tutor, student, read_at=datetime.now(timezone.utc))

        stats = notification_service.send_unread_digests()

        assert stats["candidates"] == 0
        email_service.send_email.assert_not_called()

    def test_email_failure_is_counted_not_raised(
        self, notification_service, email_service, unit_db, make_user, student, tutor
    ):
        other = make_user(RoleName.STUDENT)
        _message(unit_db, tutor, student)
        _message(unit_db, tutor, other)
        email_service.send_email.side_effect = [ServiceException("smtp down"), {"id": "ok"}]

        stats = notification_service.send_unread_digests()

        assert stats["candidates"] == 2
        assert stats["sent"] == 1
        assert stats["failed"] == 1


class TestSystemMessages:
    def test_system_message_is_stored(self, notification_service, unit_db, student, tutor):
        notification_service.send_system_message(tutor.id, student.id, "Witaj")
        unit_db.commit()

        message = unit_db.query(Message).filter_by(recipient_id=student.id).one()
        assert message.message_type == "system"
        assert message.read_at is None
