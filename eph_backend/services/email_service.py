"""
Email Service
=============
Registration notifications over SMTP.

Every send returns True/False and logs failures; callers schedule sends
through services.notifications so a mail outage never affects a request.
"""

import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

import aiosmtplib

from eph_backend.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Async email service using SMTP"""

    def __init__(self, config=settings):
        self.enabled = config.EMAIL_ENABLED
        self.smtp_host = config.SMTP_HOST
        self.smtp_port = config.SMTP_PORT
        self.smtp_user = config.SMTP_USER
        self.smtp_password = config.SMTP_PASSWORD
        self.from_email = config.EMAIL_FROM
        self.from_name = config.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return self.enabled and bool(self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject

        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
        return True

    async def send_competition_registration_email(
        self,
        to_email: str,
        name: str,
        competition_title: str
    ) -> bool:
        subject = f"You're registered for {competition_title}"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif;">
            <p>Hi {name},</p>
            <p>Your registration for <strong>{competition_title}</strong> is confirmed.</p>
            <p>Good luck!</p>
        </body>
        </html>
        """
        text_content = (
            f"Hi {name},\n\n"
            f"Your registration for {competition_title} is confirmed.\n\n"
            f"Good luck!"
        )
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_registration_cancelled_email(
        self,
        to_email: str,
        name: str,
        competition_title: str
    ) -> bool:
        subject = f"Registration cancelled: {competition_title}"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif;">
            <p>Hi {name},</p>
            <p>Your registration for <strong>{competition_title}</strong> has been cancelled
            and your seat released.</p>
        </body>
        </html>
        """
        text_content = (
            f"Hi {name},\n\n"
            f"Your registration for {competition_title} has been cancelled and your seat released."
        )
        return await self.send_email(to_email, subject, html_content, text_content)


email_service = EmailService()


def get_email_service() -> EmailService:
    """FastAPI dependency so tests can swap in a recording notifier."""
    return email_service
