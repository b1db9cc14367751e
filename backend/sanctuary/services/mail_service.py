"""
Sanctuary Backend — Transactional Email
=========================================

What:  Sends account lifecycle notifications (new signup, password reset).
How:   aiosmtplib over implicit TLS (port 465 by default). Every send is
       awaited fully, bounded by `email_timeout_seconds`, and always
       resolves to a settled EmailOutcome.
Who:   UserService (signup and forgot-password flows).

Failure policy:
    Delivery failures never propagate. The account operation that triggered
    the email still succeeds; the outcome is reported inline in the response
    payload and logged.
"""

import asyncio
import logging
from email.message import EmailMessage
from html import escape
from typing import Optional

import aiosmtplib

from sanctuary.config import Settings, settings as default_settings
from sanctuary.schemas.common import EmailOutcome

logger = logging.getLogger(__name__)

SITE_NAME = "Sanctuary CMS"


class Mailer:
    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def build_message(self, to: str, subject: str, text: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.email_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    async def send(self, message: EmailMessage) -> EmailOutcome:
        """Deliver one message and report what happened."""
        recipient = message["To"]
        if not self.config.email_enabled:
            logger.warning("SMTP is not configured; email to %s was not sent", recipient)
            return EmailOutcome(delivered=False, detail="Email delivery is not configured")

        try:
            _, reply = await asyncio.wait_for(
                aiosmtplib.send(
                    message,
                    hostname=self.config.smtp_host,
                    port=self.config.smtp_port,
                    username=self.config.smtp_username or None,
                    password=self.config.smtp_password or None,
                    use_tls=self.config.smtp_use_tls,
                ),
                timeout=self.config.email_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("Timed out sending email to %s", recipient)
            return EmailOutcome(
                delivered=False,
                detail=f"Email delivery timed out after {self.config.email_timeout_seconds:g}s",
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", recipient, e)
            return EmailOutcome(delivered=False, detail=str(e) or type(e).__name__)

        logger.info("Email sent to %s: %s", recipient, reply)
        return EmailOutcome(delivered=True, detail=reply)

    async def send_signup_notice(self, new_user_email: str) -> EmailOutcome:
        """Tell the administrator a new (unapproved) account exists."""
        message = self.build_message(
            to=self.config.admin_notification_email,
            subject=f"New User Added - {SITE_NAME}",
            text=f"{new_user_email} was added.",
            html=(
                f"<h1>New User Added</h1><hr><h2>{SITE_NAME}</h2>"
                f"<p>{escape(new_user_email)} was added.</p>"
            ),
        )
        return await self.send(message)

    async def send_password_reset(self, to: str, new_password: str) -> EmailOutcome:
        """
        Email a freshly generated password to the account holder.

        The plaintext password travels over email. This is the recovery
        mechanism the CMS has always offered; a reset-link flow would remove
        the exposure.
        """
        body = (
            "Your password has been reset. Please login with this new password - "
            f"{new_password}. You can change your password once you are logged in."
        )
        message = self.build_message(
            to=to,
            subject=f"Password Reset - {SITE_NAME}",
            text=body,
            html=f"<h1>Password Reset</h1><hr><h2>{SITE_NAME}</h2><p>{body}</p>",
        )
        return await self.send(message)


mailer = Mailer()
