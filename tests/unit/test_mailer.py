"""
Tests for notification composition and SMTP delivery
"""
from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from opsscale.api.mailer import MailMessage, SmtpNotifier, compose_notification, create_notifier
from opsscale.api.models import Submission
from opsscale.config import Settings
from opsscale.exceptions import NotificationError


@pytest.fixture
def submission() -> Submission:
    return Submission(name="Ada", email="ada@example.com", message="hello\nworld")


class TestComposeNotification:
    """Notification content"""

    def test_headers(self, submission):
        message = compose_notification(submission, "Ops Scale <noreply@opsscale.tech>", "team@opsscale.tech")

        assert message.sender == "Ops Scale <noreply@opsscale.tech>"
        assert message.recipient == "team@opsscale.tech"
        assert message.subject == "Ops Scale - New Inquiry from Ada"
        assert message.reply_to == "ada@example.com"

    def test_body_without_id(self, submission):
        message = compose_notification(submission, "from@x.io", "to@x.io")

        assert "Name: Ada" in message.text
        assert "hello\nworld" in message.text
        assert "Saved as" not in message.text
        assert "Saved as" not in message.html

    def test_body_with_id(self, submission):
        message = compose_notification(submission.with_id("66f1c2a9"), "from@x.io", "to@x.io")

        assert "Saved as #66f1c2a9" in message.text
        assert "Saved as #66f1c2a9" in message.html

    def test_html_is_escaped(self):
        submission = Submission(
            name="<b>Eve</b>", email="eve@example.com", message="<script>alert(1)</script>"
        )

        message = compose_notification(submission, "from@x.io", "to@x.io")

        assert "<script>" not in message.html
        assert "&lt;script&gt;" in message.html
        assert "&lt;b&gt;Eve&lt;/b&gt;" in message.html

    def test_subject_is_single_line(self):
        submission = Submission(name="Ada\r\nBcc: victim@example.com", email="a@b.co", message="hi")

        message = compose_notification(submission, "from@x.io", "to@x.io", site_name="Acme")

        assert "\n" not in message.subject
        assert "\r" not in message.subject
        assert message.subject.startswith("Acme - New Inquiry from Ada Bcc:")

    def test_email_message_has_text_and_html_parts(self, submission):
        email = compose_notification(submission, "from@x.io", "to@x.io").to_email_message()

        assert email["Reply-To"] == "ada@example.com"
        assert email.get_body(preferencelist=("plain",)) is not None
        assert email.get_body(preferencelist=("html",)) is not None


class TestSmtpNotifier:
    """SMTP delivery"""

    @pytest.fixture
    def message(self) -> MailMessage:
        return MailMessage(
            sender="from@x.io", recipient="to@x.io", subject="s", text="t", html="<p>t</p>"
        )

    @pytest.mark.asyncio
    async def test_send_uses_relay_settings(self, message):
        notifier = SmtpNotifier("smtp.sendgrid.net", 587, "apikey", "secret")

        with patch("opsscale.api.mailer.aiosmtplib.send", new=AsyncMock()) as send:
            await notifier.send(message)

        send.assert_awaited_once()
        kwargs = send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.sendgrid.net"
        assert kwargs["port"] == 587
        assert kwargs["username"] == "apikey"
        assert kwargs["password"] == "secret"
        assert kwargs["start_tls"] is None
        assert kwargs["use_tls"] is False

    @pytest.mark.asyncio
    async def test_implicit_tls_skips_starttls(self, message):
        notifier = SmtpNotifier("smtp.sendgrid.net", 465, "apikey", "secret", use_tls=True)

        with patch("opsscale.api.mailer.aiosmtplib.send", new=AsyncMock()) as send:
            await notifier.send(message)

        kwargs = send.await_args.kwargs
        assert kwargs["use_tls"] is True
        assert kwargs["start_tls"] is False

    @pytest.mark.asyncio
    async def test_smtp_error_is_wrapped(self, message):
        notifier = SmtpNotifier("smtp.sendgrid.net", 587, "apikey", "secret")
        error = aiosmtplib.SMTPAuthenticationError(535, "bad credentials")

        with patch("opsscale.api.mailer.aiosmtplib.send", new=AsyncMock(side_effect=error)):
            with pytest.raises(NotificationError) as exc_info:
                await notifier.send(message)

        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self, message):
        notifier = SmtpNotifier("localhost", 2525, "user", "pw")

        with patch(
            "opsscale.api.mailer.aiosmtplib.send",
            new=AsyncMock(side_effect=ConnectionRefusedError()),
        ):
            with pytest.raises(NotificationError):
                await notifier.send(message)


class TestCreateNotifier:
    """Notifier construction from settings"""

    def test_disabled_without_password(self):
        assert create_notifier(Settings()) is None

    def test_starttls_by_default(self):
        notifier = create_notifier(Settings(smtp_password="secret"))

        assert isinstance(notifier, SmtpNotifier)
        assert notifier.hostname == "smtp.sendgrid.net"
        assert notifier.port == 587
        assert notifier.use_tls is False
        assert notifier.available is True

    def test_implicit_tls_on_465(self):
        notifier = create_notifier(Settings(smtp_password="secret", smtp_port=465))
        assert notifier.use_tls is True
