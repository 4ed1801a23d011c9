"""Email sender service - sends alerts through Resend or SMTP."""
import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Tuple
from dataclasses import dataclass

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class EmailConfig:
    """Provider configuration for sending emails."""
    provider: str = "resend"  # resend, smtp
    from_address: str = ""
    resend_api_key: str = ""
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True

    @classmethod
    def from_settings(cls) -> "EmailConfig":
        return cls(
            provider=settings.email_provider,
            from_address=settings.email_from,
            resend_api_key=settings.resend_api_key or "",
            host=settings.smtp_host or "",
            port=settings.smtp_port,
            username=settings.smtp_username or "",
            password=settings.smtp_password or "",
            use_tls=settings.smtp_use_tls,
        )


class EmailSenderService:
    """Service for sending email alerts.

    Returns (success, error) tuples so callers can log the failure detail.
    """

    def __init__(
        self,
        config: Optional[EmailConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._transport = transport

    @property
    def config(self) -> EmailConfig:
        return self._config or EmailConfig.from_settings()

    def _parse_recipients(self, to_address: str) -> List[str]:
        """Parse comma-separated email addresses into a list."""
        if not to_address:
            return []
        return [addr.strip() for addr in to_address.split(",") if addr.strip()]

    async def send_email(
        self,
        to_address: str,
        subject: str,
        html: str,
        text: str,
    ) -> Tuple[bool, Optional[str]]:
        """Send an email through the configured provider."""
        recipients = self._parse_recipients(to_address)
        if not recipients:
            return False, "No valid recipients"

        config = self.config
        logger.info(f"Sending email via {config.provider}: {subject}")

        if config.provider == "smtp":
            if not config.host:
                return False, "Email notifications not configured. Set SMTP_HOST."
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(
                None, self._send_smtp, config, recipients, subject, text,
            )

        if config.provider == "resend":
            if not config.resend_api_key:
                return False, "Email notifications not configured. Set RESEND_API_KEY."
            return await self._send_resend(config, recipients, subject, html)

        return False, f"Unknown email provider: {config.provider}"

    async def _send_resend(
        self,
        config: EmailConfig,
        recipients: List[str],
        subject: str,
        html: str,
    ) -> Tuple[bool, Optional[str]]:
        """Send through the Resend HTTP API."""
        payload = {
            "from": config.from_address,
            "to": recipients,
            "subject": subject,
            "html": html,
        }
        try:
            async with httpx.AsyncClient(timeout=30, transport=self._transport) as client:
                response = await client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {config.resend_api_key}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach Resend: {e}")
            return False, str(e) or type(e).__name__

        if response.is_success:
            logger.info(f"Email sent to {len(recipients)} recipient(s): {subject}")
            return True, None

        try:
            error = response.json().get("message") or response.text
        except ValueError:
            error = response.text
        logger.warning(f"Resend returned {response.status_code}: {error}")
        return False, error

    def _send_smtp(
        self,
        config: EmailConfig,
        recipients: List[str],
        subject: str,
        body: str,
    ) -> Tuple[bool, Optional[str]]:
        """Send through SMTP (blocking, run in the thread pool)."""
        from_addr = config.from_address or config.username

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(body, "plain"))

        try:
            with smtplib.SMTP(config.host, config.port, timeout=30) as server:
                if config.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.sendmail(from_addr, recipients, msg.as_string())
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
            return False, f"SMTP authentication failed: {e}"
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            return False, f"SMTP error: {e}"
        except OSError as e:
            logger.error(f"Failed to connect to SMTP server {config.host}:{config.port}: {e}")
            return False, f"SMTP connection failed: {e}"

        logger.info(f"Email sent successfully to {len(recipients)} recipient(s): {subject}")
        return True, None


# Global instance
email_sender_service = EmailSenderService()
