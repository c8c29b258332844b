# purvita/email_system/providers/smtp_provider.py
"""
SMTP email provider using aiosmtplib.
"""
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

logger = logging.getLogger(__name__)


class SMTPProvider:
    """SMTP provider for general email domains."""

    def __init__(
            self,
            host: str,
            port: int,
            username: str,
            password: str,
            use_tls: bool = True,
            from_name: str = 'PūrVita',
            from_email: Optional[str] = None
    ):
        self.smtp_host = host
        self.smtp_port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_name = from_name
        self.from_email = from_email or username

        logger.info(f"SMTPProvider initialized: {host}:{port}")

    def _build_message(self, to: str, subject: str, html_body: Optional[str], text_body: Optional[str]):
        message = MIMEMultipart('alternative')
        message['From'] = f"{self.from_name} <{self.from_email}>"
        message['To'] = to
        message['Subject'] = subject

        # Plain part first so clients prefer HTML
        if text_body:
            message.attach(MIMEText(text_body, 'plain', 'utf-8'))
        if html_body:
            message.attach(MIMEText(html_body, 'html', 'utf-8'))

        return message

    async def send_email(
            self,
            to: str,
            subject: str,
            html_body: Optional[str],
            text_body: Optional[str] = None
    ) -> bool:
        """
        Send email via SMTP.

        Returns:
            True if sent successfully
        """
        try:
            logger.info(f"Sending email via SMTP to {to}")

            message = self._build_message(to, subject, html_body, text_body)

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
                use_tls=False,
                timeout=30
            )

            logger.info(f"✅ Email sent successfully via SMTP to {to}")
            return True

        except aiosmtplib.SMTPException as e:
            logger.error(f"SMTP error while sending email to {to}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error while sending email via SMTP to {to}: {e}", exc_info=True)
            return False

    async def test_connection(self) -> bool:
        """Connect and authenticate without sending anything."""
        client = aiosmtplib.SMTP(
            hostname=self.smtp_host,
            port=self.smtp_port,
            start_tls=self.use_tls,
            timeout=10
        )
        try:
            logger.info(f"Testing SMTP connection to {self.smtp_host}:{self.smtp_port}")
            await client.connect()
            await client.login(self.username, self.password)
            await client.quit()
            logger.info("SMTP connection test successful")
            return True

        except Exception as e:
            logger.error(f"SMTP connection test failed: {e}")
            return False
