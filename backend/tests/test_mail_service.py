"""
BookSwap Backend — Mail Service Unit Tests
===========================================

What:  Tests for MailService message building, delivery and failure mapping.
How:   `aiosmtplib.send` is the autouse `smtp_send` AsyncMock; no SMTP server.

What we test:
    ✅ Message headers, SMTP connection settings and HTML body
    ✅ Unconfigured mail: nothing sent, returns False
    ✅ SMTP and network errors → MailDeliveryError
    ✅ Template links point at the frontend
"""

import aiosmtplib
import pytest

from bookswap.config import settings
from bookswap.exceptions import MailDeliveryError
from bookswap.services.mail_service import MailService


@pytest.fixture
def service():
    return MailService()


class TestSend:
    """Tests for MailService.send delivery and failure mapping."""

    @pytest.mark.asyncio
    async def test_delivers_html_message(self, service, smtp_send):
        """Send should build an HTML message and use the configured SMTP settings."""
        sent = await service.send("lector@example.com", "Hola", "<p>Hola</p>")

        assert sent is True
        smtp_send.assert_awaited_once()
        message = smtp_send.await_args.args[0]
        assert message["From"] == settings.mail_user
        assert message["To"] == "lector@example.com"
        assert message["Subject"] == "Hola"
        assert message.get_body(("html",)).get_content().strip() == "<p>Hola</p>"

        options = smtp_send.await_args.kwargs
        assert options["hostname"] == settings.smtp_host
        assert options["port"] == settings.smtp_port
        assert options["username"] == settings.mail_user
        assert options["start_tls"] is True

    @pytest.mark.asyncio
    async def test_skips_when_not_configured(self, service, smtp_send, monkeypatch):
        """Without credentials, send should return False and not touch SMTP."""
        monkeypatch.setattr(settings, "mail_user", "")

        sent = await service.send("lector@example.com", "Hola", "<p>Hola</p>")

        assert sent is False
        smtp_send.assert_not_awaited()

    @pytest.mark.parametrize(
        "error",
        [
            aiosmtplib.SMTPException("550 mailbox unavailable"),
            ConnectionRefusedError("connection refused"),
        ],
    )
    @pytest.mark.asyncio
    async def test_failure_raises_mail_delivery_error(self, service, smtp_send, error):
        """SMTP and network errors should surface as MailDeliveryError."""
        smtp_send.side_effect = error

        with pytest.raises(MailDeliveryError) as exc_info:
            await service.send("lector@example.com", "Hola", "<p>Hola</p>")

        assert exc_info.value.code == "EMAIL_COULD_NOT_BE_SENT"
        assert exc_info.value.context["recipient"] == "lector@example.com"
        assert exc_info.value.context["error_type"] == type(error).__name__


class TestTemplates:
    """Tests for the email templates."""

    @pytest.mark.asyncio
    async def test_verification_link(self, service, smtp_send):
        """Verification email should link to the frontend verify page."""
        await service.send_verification("lector@example.com", "abc.def.ghi")
        body = smtp_send.await_args.args[0].get_body(("html",)).get_content()
        assert f"{settings.frontend_url}/verify?token=abc.def.ghi" in body

    @pytest.mark.asyncio
    async def test_interaction_notice_escapes_names(self, service, smtp_send):
        """Interaction notice should escape user-supplied names."""
        await service.send_interaction_notice(
            to="duena@example.com",
            owner_name="Ana",
            interested_name="<b>Beto</b>",
            publication_title="Rayuela",
            publication_id="123",
            action="quiere permutar",
        )

        message = smtp_send.await_args.args[0]
        body = message.get_body(("html",)).get_content()
        assert message["Subject"] == "Alguien está interesado en Rayuela"
        assert "&lt;b&gt;Beto&lt;/b&gt;" in body
        assert "quiere permutar" in body
        assert f"{settings.frontend_url}/publications/123" in body
