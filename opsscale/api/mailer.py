"""Notification mail for new contact submissions.

This module composes the inquiry notification and delivers it through an
SMTP relay (SendGrid SMTP by default).
"""

import html
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol

import aiosmtplib

from opsscale.api.models import Submission
from opsscale.exceptions import NotificationError

if TYPE_CHECKING:
    from opsscale.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailMessage:
    """One outbound notification.

    Attributes:
        sender: From header
        recipient: To header
        subject: Subject line
        text: Plain-text body
        html: HTML body
        reply_to: Optional Reply-To header
    """

    sender: str
    recipient: str
    subject: str
    text: str
    html: str
    reply_to: str | None = None

    def to_email_message(self) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = self.recipient
        message["Subject"] = self.subject
        if self.reply_to:
            message["Reply-To"] = self.reply_to
        message.set_content(self.text)
        message.add_alternative(self.html, subtype="html")
        return message


class Notifier(Protocol):
    """Protocol for notification transports."""

    @property
    def available(self) -> bool:
        ...

    async def send(self, message: MailMessage) -> None:
        """Deliver one message.

        Raises:
            NotificationError: If the transport fails
        """
        ...


class SmtpNotifier:
    """SMTP relay transport.

    Attributes:
        hostname: Relay host
        port: Relay port
        use_tls: Implicit TLS (port 465); STARTTLS when offered otherwise
        username: SMTP user
        timeout: Per-connection timeout in seconds
    """

    def __init__(
        self,
        hostname: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.username = username
        self._password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def available(self) -> bool:
        return True

    async def send(self, message: MailMessage) -> None:
        try:
            await aiosmtplib.send(
                message.to_email_message(),
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self._password,
                use_tls=self.use_tls,
                # Opportunistic STARTTLS unless the connection is already TLS
                start_tls=False if self.use_tls else None,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery via {self.hostname} failed: {e}") from e


def compose_notification(
    submission: Submission,
    sender: str,
    recipient: str,
    site_name: str = "Ops Scale",
) -> MailMessage:
    """Compose the inquiry notification for a submission.

    The storage identifier is included when the submission was stored.
    Submitted text is HTML-escaped.

    Args:
        submission: The accepted submission
        sender: From address
        recipient: Address that receives inquiries
        site_name: Product name used in the subject and heading

    Returns:
        The composed message, replying to the submitter
    """
    name = html.escape(submission.name)
    email = html.escape(submission.email)
    message = html.escape(submission.message)
    saved_as = (
        f'<p style="margin:12px 0 0;color:#475569">Saved as #{html.escape(submission.id)}</p>'
        if submission.id
        else ""
    )
    body = (
        '<div style="font-family:system-ui,Segoe UI,Roboto,Arial,sans-serif;font-size:15px;color:#0f172a">'
        f'<h2 style="margin:0 0 8px">New {html.escape(site_name)} inquiry</h2>'
        f'<p style="margin:0 0 6px"><strong>Name:</strong> {name}</p>'
        f'<p style="margin:0 0 6px"><strong>Email:</strong> {email}</p>'
        '<p style="margin:12px 0 6px"><strong>Message:</strong></p>'
        '<div style="white-space:pre-wrap;background:#f8fafc;border:1px solid #e2e8f0;'
        f'border-radius:8px;padding:12px">{message}</div>'
        f"{saved_as}"
        "</div>"
    )

    lines = [
        f"New {site_name} inquiry",
        "",
        f"Name: {submission.name}",
        f"Email: {submission.email}",
        "",
        "Message:",
        submission.message,
    ]
    if submission.id:
        lines += ["", f"Saved as #{submission.id}"]

    # Header values must not contain line breaks
    single_line_name = " ".join(submission.name.split())

    return MailMessage(
        sender=sender,
        recipient=recipient,
        subject=f"{site_name} - New Inquiry from {single_line_name}",
        text="\n".join(lines),
        html=body,
        reply_to=submission.email,
    )


def create_notifier(settings: "Settings") -> Notifier | None:
    """Build the SMTP notifier when a relay password is configured.

    Args:
        settings: Application settings

    Returns:
        An SMTP notifier, or None when mail is disabled
    """
    if not settings.smtp_password:
        logger.warning("SENDGRID_SMTP_PASS not set; email notifications disabled")
        return None
    return SmtpNotifier(
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        use_tls=settings.smtp_port == 465,
        timeout=settings.smtp_timeout,
    )
