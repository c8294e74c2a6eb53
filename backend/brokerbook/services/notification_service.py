# Overview: Outbound notification channels (SMTP email, WhatsApp Cloud API).

"""
Notification channels.

Both channels raise NotificationError when a send fails and return False
when they are not configured. Callers that treat a channel as best effort
(payment reminders, OTP mail) catch the error and log it; nothing here
swallows failures on its own.

Channels are built from app config in init_notifications and stored in
app.extensions, so tests can swap in fakes with the same send() signature.
"""

from __future__ import annotations

import logging
import re
import smtplib
from email.message import EmailMessage

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """A configured channel failed to deliver."""


class EmailChannel:
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = "",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def send(self, to: str, subject: str, body: str, attachments=None) -> bool:
        """
        attachments: iterable of (filename, bytes, mimetype).
        """
        if not self.enabled:
            logger.warning("Email channel not configured; skipping mail to %s", to)
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message.set_content(body)
        for filename, data, mimetype in attachments or ():
            maintype, subtype = mimetype.split("/", 1)
            message.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Email to {to} failed: {exc}") from exc
        return True


class WhatsAppChannel:
    def __init__(
        self,
        *,
        api_url: str,
        phone_id: str,
        token: str,
        timeout: float = 10.0,
        default_country_code: str = "91",
        session: requests.Session | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.phone_id = phone_id
        self.token = token
        self.timeout = timeout
        self.default_country_code = default_country_code
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.phone_id)

    def normalize_number(self, phone: str) -> str:
        digits = re.sub(r"\D", "", phone or "")
        if len(digits) == 10:
            digits = f"{self.default_country_code}{digits}"
        return digits

    def send(self, to: str, message: str) -> bool:
        if not self.enabled:
            logger.warning("WhatsApp channel not configured; skipping message")
            return False

        number = self.normalize_number(to)
        if not number:
            raise NotificationError("WhatsApp recipient has no usable phone number")

        try:
            response = self.session.post(
                f"{self.api_url}/{self.phone_id}/messages",
                headers={"Authorization": f"Bearer {self.token}"},
                json={
                    "messaging_product": "whatsapp",
                    "to": number,
                    "type": "text",
                    "text": {"body": message},
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(f"WhatsApp message to {number} failed: {exc}") from exc
        return True


def init_notifications(app) -> None:
    config = app.config
    app.extensions["email_channel"] = EmailChannel(
        host=config.get("SMTP_HOST", ""),
        port=config.get("SMTP_PORT", 587),
        username=config.get("SMTP_USERNAME", ""),
        password=config.get("SMTP_PASSWORD", ""),
        use_tls=config.get("SMTP_USE_TLS", True),
        sender=config.get("MAIL_FROM", ""),
    )
    app.extensions["whatsapp_channel"] = WhatsAppChannel(
        api_url=config.get("WHATSAPP_API_URL", ""),
        phone_id=config.get("WHATSAPP_PHONE_ID", ""),
        token=config.get("WHATSAPP_API_TOKEN", ""),
        timeout=config.get("WHATSAPP_TIMEOUT_SECONDS", 10.0),
        default_country_code=config.get("WHATSAPP_DEFAULT_COUNTRY_CODE", "91"),
    )


def email_channel():
    return current_app.extensions["email_channel"]


def whatsapp_channel():
    return current_app.extensions["whatsapp_channel"]
