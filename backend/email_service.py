# email_service.py — Outbound mail for password reset links
"""
Sends password reset mail over SMTP with STARTTLS.

When SMTP credentials are not configured (local/dev), the reset link is
written to the log instead of being mailed.
"""
import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr

from fastapi import Depends

from config import Settings, get_settings

logger = logging.getLogger("custor-portal.email")

RESET_SUBJECT = "Password Reset - Custor Portal"

RESET_TEMPLATE = """\
<html>
<body>
    <h2>Password Reset Request</h2>
    <p>You requested a password reset for your Custor Portal account.</p>
    <p>Click the link below to reset your password:</p>
    <p><a href="{link}" style="background-color: #007bff; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Reset Password</a></p>
    <p>Or copy and paste this link in your browser:</p>
    <p>{link}</p>
    <p><strong>This link will expire in {minutes} minutes.</strong></p>
    <p>If you didn't request this reset, please ignore this email.</p>
    <br>
    <p>Best regards,<br>Custor Portal Team</p>
</body>
</html>
"""


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings

    def build_reset_message(self, email: str, reset_link: str) -> MIMEText:
        body = RESET_TEMPLATE.format(
            link=reset_link, minutes=self.settings.password_reset_expire_minutes,
        )
        msg = MIMEText(body, "html", "utf-8")
        msg["Subject"] = RESET_SUBJECT
        msg["From"] = formataddr(("Custor Portal", self.settings.smtp_from_email or ""))
        msg["To"] = email
        return msg

    def _send(self, email: str, msg: MIMEText) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.sendmail(self.settings.smtp_from_email, [email], msg.as_string())

    async def send_password_reset_email(self, email: str, reset_link: str) -> bool:
        """Returns True only when the message was handed to the SMTP server"""
        if not self.settings.smtp_configured:
            logger.warning(f"SMTP not configured; password reset link for {email}: {reset_link}")
            return False

        msg = self.build_reset_message(email, reset_link)
        try:
            await asyncio.to_thread(self._send, email, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Password reset email to {email} failed: {e}")
            return False
        logger.info(f"Password reset email sent to {email}")
        return True


def get_email_service(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings)
