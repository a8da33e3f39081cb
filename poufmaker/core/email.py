# poufmaker/core/email.py
# Отправка писем (подтверждение email, сброс пароля).
# Best effort: ошибка доставки логируется как warning и никогда не поднимается к вызывающему.
import logging
import smtplib
from email.message import EmailMessage

from poufmaker.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.SMTP_HOST)

    def send(self, to: str, subject: str, html: str) -> bool:
        """Отправляет письмо. Возвращает True при успехе, False при любой ошибке."""
        if not self.configured:
            logger.warning(f"SMTP is not configured, email '{subject}' to {to} was not sent")
            return False
        msg = EmailMessage()
        msg["From"] = self.settings.SMTP_FROM
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        try:
            self._deliver(msg)
        except Exception as e:
            logger.warning(f"⚠️ Failed to send email '{subject}' to {to}: {e}")
            return False
        logger.info(f"📧 Email '{subject}' sent to {to}")
        return True

    def _deliver(self, msg: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=10) as smtp:
            if s.SMTP_STARTTLS:
                smtp.starttls()
            if s.SMTP_USER:
                smtp.login(s.SMTP_USER, s.SMTP_PASSWORD)
            smtp.send_message(msg)

    def send_confirmation(self, email: str, token: str) -> bool:
        url = f"{self.settings.APP_URL}/verify-email?token={token}"
        html = f"""
<h1>Welcome to Poufmaker!</h1>
<p>Please confirm your email address by clicking the link below:</p>
<a href="{url}">Confirm Email</a>
<p>If you didn't request this email, please ignore it.</p>
"""
        return self.send(email, "Confirm your email address", html)

    def send_password_reset(self, email: str, token: str) -> bool:
        url = f"{self.settings.APP_URL}/reset-password?token={token}"
        minutes = self.settings.RESET_TOKEN_EXPIRE_MINUTES
        html = f"""
<h2>Password Reset Request</h2>
<p>You have requested to reset your password. Click the link below to proceed:</p>
<p><a href="{url}">Reset Password</a></p>
<p>This link will expire in {minutes} minutes.</p>
<p>If you didn't request this, please ignore this email.</p>
"""
        return self.send(email, "Password Reset Request", html)
