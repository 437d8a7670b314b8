"""Outgoing email over SMTP."""

import logging
from email.message import EmailMessage

import aiosmtplib

from src.config import get_settings

logger = logging.getLogger(__name__)

BUTTON_STYLE = (
    "background: #22c55e; color: #fff; padding: 10px 16px; border-radius: 6px; "
    "text-decoration: none;"
)


def _layout(heading: str, text: str, link: str, button: str, footer: str = "") -> str:
    return f"""\
<html>
  <body style="font-family: sans-serif; color: #1f2937;">
    <h2>{heading}</h2>
    <p>{text}</p>
    <p><a href="{link}" style="{BUTTON_STYLE}">{button}</a></p>
    {footer}
  </body>
</html>
"""


class EmailService:
    """Sends HTML email through the configured SMTP server using aiosmtplib."""

    def __init__(self) -> None:
        self.settings = get_settings()

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.smtp_host)

    def _frontend_link(self, path: str) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}{path}"

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send an email. Returns False when SMTP is not configured or sending fails."""
        if not self.is_configured:
            logger.info(f"SMTP not configured, skipping email to {to}: {subject}")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.settings.email_from
        message["To"] = to
        message.set_content("This message requires an HTML capable email client.")
        message.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=self.settings.smtp_username or None,
                password=self.settings.smtp_password or None,
                start_tls=self.settings.smtp_use_tls,
                timeout=30,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
            return False

        logger.info(f"Sent email to {to}: {subject}")
        return True

    async def send_streak_reminder(self, email: str, username: str) -> bool:
        html = _layout(
            f"Don't lose your streak, {username}!",
            "You didn't log any activities yesterday. Log today to start a new streak.",
            self._frontend_link("/"),
            "Log today's activities",
        )
        return await self.send(email, "Don't lose your streak!", html)

    async def send_verification(self, email: str, username: str, token: str) -> bool:
        html = _layout(
            f"Welcome to Growth Tracker, {username}!",
            "Confirm your email address to finish setting up your account.",
            self._frontend_link(f"/verify-email?token={token}"),
            "Verify email",
            "<p>This link expires in 24 hours.</p>",
        )
        return await self.send(email, "Verify your email", html)

    async def send_password_reset(self, email: str, username: str, token: str) -> bool:
        html = _layout(
            f"Reset your password, {username}",
            "Someone asked to reset the password for your account. "
            "If it wasn't you, ignore this email.",
            self._frontend_link(f"/reset-password?token={token}"),
            "Choose a new password",
            "<p>This link expires in 15 minutes and can be used once.</p>",
        )
        return await self.send(email, "Reset your password", html)
