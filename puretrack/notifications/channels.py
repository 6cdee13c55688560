"""Notifier implementations for digest delivery.

Provides an ABC for delivery transports plus concrete implementations
for SMTP, an HTTP mail relay, and a logging stand-in for development.
Every transport raises ``DeliveryError`` on failure; the caller decides
what a failure costs.
"""

import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from collections import deque
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate

import httpx

from puretrack.notifications.config import NotificationConfig

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """A message could not be handed to the transport."""


class Notifier(ABC):
    """Abstract base for delivery transports."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this transport (e.g. 'smtp', 'webhook')."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> None:
        """Deliver one message.

        Args:
            to: Recipient address.
            subject: Subject line.
            html_body: Rendered HTML body.
            text_body: Optional plaintext alternative.

        Raises:
            DeliveryError: The transport rejected or failed the message.
        """


class SmtpNotifier(Notifier):
    """Sends multipart email over SMTP with optional STARTTLS.

    smtplib blocks, so each send runs in a worker thread.
    """

    def __init__(self, config: NotificationConfig) -> None:
        self._config = config

    @property
    def name(self) -> str:
        return "smtp"

    def _build_message(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self._config.from_name, self._config.from_address))
        msg["To"] = to
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        config = self._config
        with smtplib.SMTP(
            config.smtp_host, config.smtp_port, timeout=config.smtp_timeout_seconds,
        ) as server:
            server.ehlo()
            if config.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            if config.smtp_username:
                server.login(config.smtp_username, config.smtp_password)
            server.send_message(msg)

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> None:
        msg = self._build_message(to, subject, html_body, text_body)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except smtplib.SMTPAuthenticationError as e:
            raise DeliveryError("SMTP authentication failed") from e
        except smtplib.SMTPRecipientsRefused as e:
            raise DeliveryError(f"Recipient refused: {to}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"SMTP send failed: {e}") from e
        logger.info("Email sent to %s: %s", to, subject)


class WebhookNotifier(Notifier):
    """Posts messages as JSON to an HTTP mail relay.

    Creates a new ``httpx.AsyncClient`` per call (short-lived, no pooling).
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        from_address: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._token = token
        self._from_address = from_address
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "webhook"

    def _build_payload(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None,
    ) -> dict:
        payload = {
            "to": to,
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            payload["text"] = text_body
        if self._from_address:
            payload["from"] = self._from_address
        return payload

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> None:
        payload = self._build_payload(to, subject, html_body, text_body)
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise DeliveryError(f"Mail relay {self._url} timed out") from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"Mail relay {self._url} failed: {e}") from e

        if not resp.is_success:
            raise DeliveryError(
                f"Mail relay {self._url} returned {resp.status_code}"
            )
        logger.info("Relayed message to %s: %s", to, subject)


class LogNotifier(Notifier):
    """Logs messages instead of delivering them.

    The last ``keep`` messages stay in ``sent`` for inspection; older
    ones are discarded so a long-running scheduler stays bounded.
    """

    def __init__(self, keep: int = 20) -> None:
        self.sent: deque[dict] = deque(maxlen=keep)

    @property
    def name(self) -> str:
        return "log"

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})
        logger.info("Would send to %s: %s (%d bytes HTML)", to, subject, len(html_body))


def build_notifier(config: NotificationConfig | None = None) -> Notifier:
    """Create the configured notifier.

    Raises:
        ValueError: ``webhook`` selected without a URL.
    """
    config = config or NotificationConfig()

    if config.backend == "smtp":
        return SmtpNotifier(config)
    if config.backend == "webhook":
        if not config.webhook_url:
            raise ValueError("NOTIFICATIONS_WEBHOOK_URL is required for the webhook backend")
        return WebhookNotifier(
            url=config.webhook_url,
            token=config.webhook_token,
            from_address=config.from_address,
            timeout=config.webhook_timeout_seconds,
        )
    return LogNotifier()
