# backend/schoolmaster/services/notification_templates.py
"""Polish email templates for lesson and messaging notifications."""

from dataclasses import dataclass
from typing import Optional

from ..core.config import settings
from ..core.constants import BRAND_NAME, MESSAGE_PREVIEW_LENGTH

FOOTER = f"Ten email został wysłany automatycznie przez system {BRAND_NAME}."


@dataclass(frozen=True)
class EmailContent:
    subject: str
    html: str
    text: str


def _wrap(title: str, paragraphs: list, link: Optional[str] = None, link_label: str = "") -> str:
    body = "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)
    button = f'<p><a href="{link}">{link_label}</a></p>' if link else ""
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8"></head><body>'
        f"<h2>{title}</h2>{body}{button}<p><small>{FOOTER}</small></p>"
        "</body></html>"
    )


def _text(lines: list) -> str:
    return "\n".join(lines + ["", FOOTER])


def unread_messages_phrase(count: int) -> str:
    """Polish plural used in the digest subject."""
    if count == 1:
        return "nową wiadomość"
    if count < 5:
        return "nowe wiadomości"
    return "nowych wiadomości"


def message_preview(content: str) -> str:
    if len(content) <= MESSAGE_PREVIEW_LENGTH:
        return content
    return content[: MESSAGE_PREVIEW_LENGTH - 3] + "..."


def invitation_created(
    tutor_name: str, student_name: str, topic_name: str, preferred_date: str
) -> EmailContent:
    url = f"{settings.frontend_url}/tutor-invitations"
    paragraphs = [
        f"Cześć {tutor_name}!",
        f"Otrzymałeś nowe zaproszenie do lekcji od ucznia {student_name}.",
        f"Temat: {topic_name}",
        f"Preferowany termin: {preferred_date}",
    ]
    return EmailContent(
        subject=f"Nowe zaproszenie do lekcji - {BRAND_NAME}",
        html=_wrap("Nowe zaproszenie do lekcji", paragraphs, url, "Sprawdź zaproszenia"),
        text=_text(paragraphs + ["", f"Aby odpowiedzieć, odwiedź: {url}"]),
    )


def invitation_accepted(
    student_name: str, tutor_name: str, topic_name: str, lesson_date: str
) -> EmailContent:
    paragraphs = [
        f"Cześć {student_name}!",
        f"{tutor_name} zaakceptował Twoje zaproszenie do lekcji.",
        f"Temat: {topic_name}",
        f"Termin: {lesson_date}",
    ]
    return EmailContent(
        subject=f"Lekcja potwierdzona - {BRAND_NAME}",
        html=_wrap("Twoja lekcja została potwierdzona", paragraphs),
        text=_text(paragraphs),
    )


def invitation_rejected(
    student_name: str, tutor_name: str, topic_name: str, note: Optional[str]
) -> EmailContent:
    paragraphs = [
        f"Cześć {student_name}!",
        f"{tutor_name} nie może poprowadzić lekcji z tematu {topic_name}.",
        "Zablokowane środki zostały zwolnione. Możesz zaprosić innego korepetytora.",
    ]
    if note:
        paragraphs.append(f"Wiadomość od korepetytora: {note}")
    return EmailContent(
        subject=f"Zaproszenie odrzucone - {BRAND_NAME}",
        html=_wrap("Zaproszenie odrzucone", paragraphs),
        text=_text(paragraphs),
    )


def lesson_cancelled(
    recipient_name: str, lesson_title: str, lesson_date: str, cancelled_by: str, reason: Optional[str]
) -> EmailContent:
    paragraphs = [
        f"Cześć {recipient_name}!",
        f"Lekcja „{lesson_title}” zaplanowana na {lesson_date} została anulowana przez: {cancelled_by}.",
    ]
    if reason:
        paragraphs.append(f"Powód: {reason}")
    return EmailContent(
        subject=f"Lekcja anulowana - {BRAND_NAME}",
        html=_wrap("Lekcja anulowana", paragraphs),
        text=_text(paragraphs),
    )


def referral_bonus(referrer_name: str, bonus_amount: str, referred_name: str) -> EmailContent:
    paragraphs = [
        f"Cześć {referrer_name}!",
        f"{referred_name} ukończył pierwszą lekcję z Twojego polecenia.",
        f"Na Twoje konto poleceń dodaliśmy {bonus_amount} zł.",
    ]
    return EmailContent(
        subject=f"Otrzymałeś bonus polecający! - {BRAND_NAME}",
        html=_wrap("Bonus polecający", paragraphs),
        text=_text(paragraphs),
    )


def unread_messages(
    user_name: str, unread_count: int, sender_name: str, last_message_preview: str
) -> EmailContent:
    url = f"{settings.frontend_url}/messages"
    paragraphs = [
        f"Cześć {user_name}!",
        f"Masz {unread_count} {unread_messages_phrase(unread_count)} na platformie {BRAND_NAME}.",
        f"Najnowsza wiadomość od: {sender_name}",
        f"„{last_message_preview}”",
    ]
    return EmailContent(
        subject=f"Masz {unread_count} {unread_messages_phrase(unread_count)} - {BRAND_NAME}",
        html=_wrap("Nowe wiadomości", paragraphs, url, "Sprawdź wiadomości"),
        text=_text(paragraphs + ["", f"Aby przeczytać wiadomości, przejdź do: {url}"]),
    )
