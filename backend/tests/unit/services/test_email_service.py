"""Email delivery provider selection and failure handling."""

from unittest.mock import MagicMock, patch

from pydantic import SecretStr
import pytest

from schoolmaster.core.config import settings
from schoolmaster.core.exceptions import ServiceException
from schoolmaster.services.email import EmailService


def test_console_provider_without_credentials():
    service = EmailService()

    result = service.send_email("uczen@example.com", "Temat", "<p>Cześć</p>")

    assert service.provider == "console"
    assert result == {"status": "logged", "provider": "console"}


def test_html_is_converted_to_text():
    service = EmailService()

    assert service._html_to_text("<p>Linia 1</p><p>Linia <b>2</b></p>") == "Linia 1\nLinia 2"


def test_resend_provider(monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "re_test")
    service = EmailService()

    with patch("resend.Emails.send", return_value={"id": "email-1"}) as mock_send:
        result = service.send_email("uczen@example.com", "Temat", "<p>Treść</p>")

    assert result == {"id": "email-1"}
    payload = mock_send.call_args.args[0]
    assert payload["to"] == "uczen@example.com"
    assert payload["text"] == "Treść"


def test_resend_failure_raises_service_exception(monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "re_test")
    service = EmailService()

    with patch("resend.Emails.send", side_effect=RuntimeError("rate limited")):
        with pytest.raises(ServiceException):
            service.send_email("uczen@example.com", "Temat", "<p>Treść</p>")


def test_smtp_provider(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_user", "mailer")
    monkeypatch.setattr(settings, "smtp_password", SecretStr("secret"))
    service = EmailService()
    server = MagicMock()

    with patch("smtplib.SMTP", return_value=server):
        result = service.send_email("uczen@example.com", "Temat", "<p>Treść</p>")

    assert service.provider == "smtp"
    assert result == {"status": "sent", "provider": "smtp"}
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer", "secret")
    server.quit.assert_called_once()
