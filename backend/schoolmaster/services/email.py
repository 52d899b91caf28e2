# backend/schoolmaster/services/email.py
"""
Email Service for the SchoolMaster platform

Sends email through Resend when RESEND_API_KEY is set, through SMTP when
SMTP credentials are configured, and otherwise writes the message to the log
so local development works without a provider.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import re
import smtplib
import ssl
from typing import Any, Dict, Optional

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from .base import BaseService

logger = logging.getLogger(__name__)

PROVIDER_RESEND = "resend"
PROVIDER_SMTP = "smtp"
PROVIDER_CONSOLE = "console"


class EmailService(BaseService):
    """Provider-agnostic email delivery."""

    def __init__(self, db: Optional[Session] = None):
        super().__init__(db)
        self.from_email = settings.from_email
        if settings.resend_api_key:
            resend.api_key = settings.resend_api_key
            self.provider = PROVIDER_RESEND
        elif settings.smtp_configured:
            self.provider = PROVIDER_SMTP
        else:
            self.provider = PROVIDER_CONSOLE
        self.logger.debug(f"EmailService using provider: {self.provider}")

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML content to plain text for better deliverability"""
        text = re.sub(r"<br\s*/?>|</p>", "\n", html_content)
        text = re.sub(r"<[^>]+>", "", text)
        text = re.sub(r"[ \t]+", " ", text)
        return text.strip()

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one email.

        Returns:
            Provider response (Resend) or a small status dict

        Raises:
            ServiceException: If the provider rejects the message
        """
        if not text_content:
            text_content = self._html_to_text(html_content)

        try:
            if self.provider == PROVIDER_RESEND:
                response = resend.Emails.send(
                    {
                        "from": self.from_email,
                        "to": to_email,
                        "subject": subject,
                        "html": html_content,
                        "text": text_content,
                    }
                )
            elif self.provider == PROVIDER_SMTP:
                self._send_via_smtp(to_email, subject, html_content, text_content)
                response = {"status": "sent", "provider": PROVIDER_SMTP}
            else:
                self.logger.info(
                    f"[console email] to={to_email} subject={subject}\n{text_content}"
                )
                response = {"status": "logged", "provider": PROVIDER_CONSOLE}
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"Failed to send email to {to_email} via SMTP: {str(e)}")
            raise ServiceException(f"Failed to send email: {str(e)}")
        except Exception as e:
            self.logger.error(f"Failed to send email to {to_email}: {str(e)}")
            raise ServiceException(f"Failed to send email: {str(e)}")

        self.log_operation("email_sent", to_email=to_email, subject=subject, provider=self.provider)
        return response

    def _send_via_smtp(self, to_email: str, subject: str, html_content: str, text_content: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_content, "plain", "utf-8"))
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        context = ssl.create_default_context()
        password = settings.smtp_password.get_secret_value() if settings.smtp_password else ""
        if settings.smtp_port == 465:
            server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=30)
        else:
            server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30)
            server.starttls(context=context)
        try:
            server.login(settings.smtp_user, password)
            server.sendmail(self.from_email, [to_email], msg.as_string())
        finally:
            server.quit()
