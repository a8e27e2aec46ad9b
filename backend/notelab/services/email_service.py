"""
Outbound email for account notifications.

Sends through SMTP when configured. Without an SMTP host the message is only
logged, which is the expected development setup.
"""
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from notelab.config import get_settings
from notelab.services.email_templates import (
    EmailMessage,
    password_reset_email,
    password_reset_success_email,
)

logger = logging.getLogger(__name__)


@dataclass
class SMTPConfig:
    """SMTP configuration container"""
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    from_address: str
    use_tls: bool


class EmailService:
    """Renders and delivers account emails"""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def _get_smtp_config(self) -> Optional[SMTPConfig]:
        if not self.settings.smtp_host:
            return None

        return SMTPConfig(
            host=self.settings.smtp_host,
            port=self.settings.smtp_port,
            user=self.settings.smtp_user or None,
            password=self.settings.smtp_password or None,
            from_address=self.settings.smtp_from,
            use_tls=self.settings.smtp_use_tls,
        )

    def _send_email(self, to_address: str, message: EmailMessage, config: SMTPConfig) -> None:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = message.subject
        msg['From'] = config.from_address
        msg['To'] = to_address
        msg['Date'] = datetime.utcnow().strftime('%a, %d %b %Y %H:%M:%S +0000')
        msg.attach(MIMEText(message.text, 'plain'))
        msg.attach(MIMEText(message.html, 'html'))

        with smtplib.SMTP(config.host, config.port) as server:
            if config.use_tls:
                server.starttls()
            if config.user and config.password:
                server.login(config.user, config.password)
            server.send_message(msg)

    def send(self, to_address: str, message: EmailMessage) -> bool:
        """
        Deliver a message.

        Returns:
            True if handed to the SMTP server, False if only logged

        Raises:
            smtplib.SMTPException / OSError on delivery failure
        """
        config = self._get_smtp_config()
        if not config:
            logger.info(f"SMTP not configured; email to {to_address} not sent: {message.subject}")
            logger.debug(message.text)
            return False

        self._send_email(to_address, message, config)
        logger.info(f"Sent email '{message.subject}' to {to_address}")
        return True

    def send_password_reset(self, to_address: str, user_name: str, reset_url: str) -> bool:
        return self.send(to_address, password_reset_email(user_name, reset_url))

    def send_password_reset_success(self, to_address: str, user_name: str) -> bool:
        return self.send(to_address, password_reset_success_email(user_name))


def get_email_service() -> EmailService:
    """FastAPI dependency"""
    return EmailService()
