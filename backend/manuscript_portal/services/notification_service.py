"""
Email notifications for the researcher workflow and help desk.

Every send is best effort: when SMTP is not configured, or the server
refuses, the failure is logged and False is returned.
"""
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional

from manuscript_portal.core.config import settings
from manuscript_portal.core.logging_config import logger


class NotificationService:
    """Async SMTP mailer"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.admin_emails = settings.ADMIN_NOTIFICATION_EMAILS

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    async def send_email(self, to_email: str, subject: str, text_content: str,
                         html_content: Optional[str] = None) -> bool:
        if not self.is_configured:
            logger.info(f"[Email] Not configured, skipping '{subject}' to {to_email}")
            return False

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject
        message.attach(MIMEText(text_content, "plain"))
        if html_content:
            message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email] Failed to send '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"[Email] Sent '{subject}' to {to_email}")
        return True

    async def send_to_admins(self, subject: str, text_content: str) -> int:
        """Returns the number of admins that were mailed"""
        sent = 0
        for email in self._admin_recipients():
            if await self.send_email(email, subject, text_content):
                sent += 1
        return sent

    def _admin_recipients(self) -> List[str]:
        return [e for e in self.admin_emails if e]

    # ==================== Messages ====================

    async def notify_new_application(self, applicant_name: str, applicant_email: str) -> int:
        return await self.send_to_admins(
            "New researcher application",
            f"{applicant_name} <{applicant_email}> applied for researcher access.\n"
            "Review it in the admin dashboard.",
        )

    async def notify_application_decision(self, to_email: str, name: str, approved: bool,
                                          note: Optional[str] = None) -> bool:
        if approved:
            subject = "Your researcher application was approved"
            body = (f"Dear {name},\n\nYour researcher application has been approved. "
                    "You can now view detailed manuscripts.")
        else:
            subject = "Your researcher application was not approved"
            body = (f"Dear {name},\n\nYour researcher application was not approved. "
                    "You can still sign in and browse public manuscripts.")
        if note:
            body += f"\n\nNote from the reviewer: {note}"
        return await self.send_email(to_email, subject, body)

    ACCESS_CHANGES = {
        "revoked": (
            "Your researcher access was revoked",
            "Your researcher access has been revoked. You can still sign in and browse "
            "public manuscripts, and you may apply again.",
        ),
        "suspended": (
            "Your researcher access was suspended",
            "Your researcher access has been suspended. Detailed manuscripts are "
            "unavailable until an administrator reinstates it.",
        ),
        "reinstated": (
            "Your researcher access was reinstated",
            "Your researcher access has been reinstated. You can view detailed manuscripts again.",
        ),
    }

    async def notify_researcher_access_change(self, to_email: str, name: str, change: str,
                                              note: Optional[str] = None) -> bool:
        """change is one of revoked, suspended or reinstated"""
        subject, text = self.ACCESS_CHANGES[change]
        body = f"Dear {name},\n\n{text}"
        if note:
            body += f"\n\nNote from the reviewer: {note}"
        return await self.send_email(to_email, subject, body)

    async def notify_help_request(self, user_name: str, user_email: str, message: str) -> int:
        return await self.send_to_admins(
            "New help request",
            f"From: {user_name} <{user_email}>\n\n{message}",
        )


notification_service = NotificationService()
