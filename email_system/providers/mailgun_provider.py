# purvita/email_system/providers/mailgun_provider.py
"""
Mailgun email provider for secure domains.
"""
import logging
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)


class MailgunProvider:
    """Mailgun provider for secure email domains."""

    def __init__(
            self,
            api_key: str,
            domain: str,
            region: str = 'us',
            from_name: str = 'PūrVita',
            from_email: Optional[str] = None
    ):
        """
        Initialize Mailgun provider.

        Args:
            api_key: Mailgun API key
            domain: Mailgun domain
            region: Region (eu or us)
            from_name: Display name of the sender
            from_email: Sender address, noreply@domain when omitted
        """
        self.api_key = api_key
        self.domain = domain
        self.region = region
        self.from_name = from_name
        self.from_email = from_email or f"noreply@{domain}"

        if region == 'eu':
            self.base_url = "https://api.eu.mailgun.net/v3"
        else:
            self.base_url = "https://api.mailgun.net/v3"

        logger.info(f"MailgunProvider initialized: domain={domain}, region={region}")

    async def send_email(
            self,
            to: str,
            subject: str,
            html_body: Optional[str],
            text_body: Optional[str] = None
    ) -> bool:
        """
        Send email via Mailgun API.

        Returns:
            True if sent successfully
        """
        try:
            logger.info(f"Sending email via Mailgun to {to}")

            data = {
                "from": f"{self.from_name} <{self.from_email}>",
                "to": to,
                "subject": subject,
            }
            if html_body:
                data["html"] = html_body
            if text_body:
                data["text"] = text_body

            async with aiohttp.ClientSession() as session:
                async with session.post(
                        f"{self.base_url}/{self.domain}/messages",
                        auth=aiohttp.BasicAuth("api", self.api_key),
                        data=data,
                        timeout=aiohttp.ClientTimeout(total=30)
                ) as response:
                    if response.status == 200:
                        logger.info(f"✅ Email sent successfully via Mailgun to {to}")
                        return True

                    error_text = await response.text()
                    logger.error(f"Mailgun API error: {response.status} - {error_text}")
                    return False

        except aiohttp.ClientError as e:
            logger.error(f"HTTP error while sending email via Mailgun to {to}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error while sending email via Mailgun to {to}: {e}", exc_info=True)
            return False

    async def test_connection(self) -> bool:
        """True unless Mailgun rejects the credentials."""
        if not self.api_key or not self.domain:
            logger.error("Mailgun API key or domain not configured")
            return False

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                        f"{self.base_url}/domains/{self.domain}",
                        auth=aiohttp.BasicAuth("api", self.api_key),
                        timeout=aiohttp.ClientTimeout(total=5)
                ) as response:
                    if response.status == 401:
                        logger.error("Mailgun authentication failed")
                        return False
                    logger.info(f"Mailgun auth check passed (status: {response.status})")
                    return True

        except Exception as e:
            # Network trouble does not mean bad credentials
            logger.warning(f"Mailgun connection test skipped due to error: {e}")
            return True
