"""
BookSwap Backend — Mail Service (SMTP Delivery with Retries)
=============================================================

What:  Sends the three transactional emails: address verification,
       password reset, and "someone is interested in your book".
Why:   Isolates SMTP details (host, STARTTLS, credentials, retries) from the
       business logic that decides WHEN an email goes out.
How:   Builds an `EmailMessage` and hands it to `aiosmtplib.send`, wrapped
       in a tenacity retry for transient network and SMTP failures.
Who:   UserService (verification, reset) and InteractionService
       (owner notifications, from a background task).

Error Strategy:
    ┌────────────────────┐    ┌─────────────────────┐    ┌──────────────────┐
    │ aiosmtplib.send    │───▶│ tenacity: N attempts │───▶│ MailDeliveryError│
    │ (SMTP / OSError)   │    │ exp. backoff+jitter  │    │ (502 if surfaced)│
    └────────────────────┘    └─────────────────────┘    └──────────────────┘

    When MAIL_USER is not configured, nothing is sent: send() logs a warning
    and returns False. Callers treat that as "not delivered" without failing
    the request.
"""

import asyncio
import html
import logging
from email.message import EmailMessage

import aiosmtplib
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from bookswap.config import settings
from bookswap.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)


class MailService:
    """
    Thin async wrapper around aiosmtplib.

    Stateless: every send opens its own SMTP connection, which is what
    aiosmtplib.send does. Volume is a handful of messages per user action,
    so connection reuse is not worth the lifecycle management.
    """

    def _build_message(self, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = settings.mail_user
        message["To"] = to
        message["Subject"] = subject
        message.set_content("Este mensaje requiere un cliente de correo compatible con HTML.")
        message.add_alternative(html_body, subtype="html")
        return message

    @retry(
        retry=retry_if_exception_type((
            aiosmtplib.SMTPException,
            OSError,
            asyncio.TimeoutError,
        )),
        stop=stop_after_attempt(settings.mail_retry_attempts),
        wait=wait_exponential_jitter(
            initial=settings.mail_retry_min_wait,
            max=settings.mail_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _deliver(self, message: EmailMessage) -> None:
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.mail_user,
            password=settings.mail_pass,
            start_tls=settings.smtp_start_tls,
            validate_certs=settings.smtp_validate_certs,
            timeout=settings.mail_timeout,
        )

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        """
        Deliver one HTML email.

        Returns:
            True when the SMTP server accepted the message, False when mail
            is not configured.

        Raises:
            MailDeliveryError: Every retry attempt failed.
        """
        if not settings.mail_configured:
            logger.warning("Mail not configured; skipping '%s' to %s", subject, to)
            return False

        message = self._build_message(to, subject, html_body)
        try:
            await self._deliver(message)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.error("Email '%s' to %s failed: %s", subject, to, e)
            raise MailDeliveryError(
                context={"recipient": to, "error_type": type(e).__name__},
            ) from e

        logger.info("Email '%s' sent to %s", subject, to)
        return True

    # ── Templates ─────────────────────────────────────────────────────────

    async def send_verification(self, to: str, token: str) -> bool:
        link = f"{settings.frontend_url}/verify?token={token}"
        return await self.send(
            to,
            "Verificación de correo electrónico",
            f'<p>Para verificar su correo electrónico pinche <a href="{link}">aquí</a></p>',
        )

    async def send_password_reset(self, to: str, token: str) -> bool:
        link = f"{settings.frontend_url}/change-password?token={token}"
        return await self.send(
            to,
            "Cambio de contraseña",
            "<p>Recibimos una solicitud para cambiar tu contraseña. "
            f'Para elegir una nueva pinche <a href="{link}">aquí</a>.</p>'
            "<p>Si no fuiste tú, ignora este mensaje.</p>",
        )

    async def send_interaction_notice(
        self,
        to: str,
        owner_name: str,
        interested_name: str,
        publication_title: str,
        publication_id: str,
        action: str,
    ) -> bool:
        link = f"{settings.frontend_url}/publications/{publication_id}"
        return await self.send(
            to,
            f"Alguien está interesado en {publication_title}",
            f"<p>Hola {html.escape(owner_name)},</p>"
            f"<p><strong>{html.escape(interested_name)}</strong> {action} tu "
            f"publicación <em>{html.escape(publication_title)}</em>.</p>"
            f'<p>Puedes verla <a href="{link}">aquí</a>.</p>',
        )


# ── Module-level singleton ────────────────────────────────────────────────
mail_service = MailService()
