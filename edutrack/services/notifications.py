"""Outbound notifications.

Built once by ``create_app`` and reached through the ``get_notifier``
dependency. Delivery is best effort: callers never fail a request because a
mail could not be sent.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import List, Optional, Protocol

from edutrack.config import Settings
from edutrack.models import User

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_approval(self, user: User) -> None:
        ...


def approval_message(user: User, sender: str, frontend_url: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = "Account Approved - EduTrack"
    message["From"] = sender
    message["To"] = user.email
    message.set_content(
        f"Hello {user.name},\n\n"
        f"Your EduTrack account has been approved as a {user.role.value}.\n"
        f"You can now sign in to your dashboard: {frontend_url}\n\n"
        "Best regards,\nEduTrack Team\n"
    )
    message.add_alternative(
        f"<h2>Congratulations! Your account has been approved</h2>"
        f"<p>Hello {user.name},</p>"
        f"<p>Your EduTrack account has been approved as a <strong>{user.role.value}</strong>.</p>"
        f'<p><a href="{frontend_url}">Sign In Now</a></p>'
        f"<p>Best regards,<br>EduTrack Team</p>",
        subtype="html",
    )
    return message


class SmtpNotifier:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        frontend_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.frontend_url = frontend_url
        self.username = username
        self.password = password
        self.timeout = timeout

    def send_approval(self, user: User) -> None:
        message = approval_message(user, self.sender, self.frontend_url)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Approval email to %s failed: %s", user.email, exc)
            return
        logger.info("Approval email sent to %s", user.email)


class LoggingNotifier:
    """Used when no SMTP host is configured."""

    def send_approval(self, user: User) -> None:
        logger.info("Approval notification for %s (%s)", user.email, user.role.value)


class RecordingNotifier:
    """Keeps sent notifications in memory; handy for tests and dry runs."""

    def __init__(self) -> None:
        self.approved: List[str] = []

    def send_approval(self, user: User) -> None:
        self.approved.append(user.email)


def build_notifier(settings: Settings) -> Notifier:
    if settings.smtp_host:
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_sender or settings.smtp_user or "no-reply@edutrack.local",
            frontend_url=settings.frontend_url,
            username=settings.smtp_user,
            password=settings.smtp_password,
        )
    return LoggingNotifier()
