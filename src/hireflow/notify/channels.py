from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

import requests

from hireflow.config import Settings
from hireflow.errors import NotificationSendFailure

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    configured: bool

    def send(self, to: str, subject: str, html_body: str, text_body: str = "") -> None: ...


class MessageSender(Protocol):
    configured: bool

    def send(self, to: str, body: str) -> None: ...


class EmailChannel:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return self.settings.smtp_configured

    def send(self, to: str, subject: str, html_body: str, text_body: str = "") -> None:
        sender = self.settings.smtp_from or self.settings.smtp_user
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.smtp_timeout_sec,
            ) as server:
                if self.settings.smtp_use_tls:
                    server.starttls(context=ssl.create_default_context())
                server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.sendmail(sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationSendFailure("email", to, str(exc)) from exc
        logger.info("Email sent to %s subject=%r", to, subject)


class MessagingChannel:
    """Twilio Messages API, WhatsApp-addressed unless disabled in settings."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return self.settings.twilio_configured

    def _address(self, number: str) -> str:
        number = number.strip()
        if not self.settings.twilio_use_whatsapp or number.startswith("whatsapp:"):
            return number
        return f"whatsapp:{number}"

    def send(self, to: str, body: str) -> None:
        url = f"{self.settings.twilio_api_base}/Accounts/{self.settings.twilio_account_sid}/Messages.json"
        try:
            response = requests.post(
                url,
                data={
                    "From": self._address(self.settings.twilio_from_number),
                    "To": self._address(to),
                    "Body": body,
                },
                auth=(self.settings.twilio_account_sid, self.settings.twilio_auth_token),
                timeout=self.settings.twilio_timeout_sec,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationSendFailure("messaging", to, str(exc)) from exc
        logger.info("Message sent to %s", to)
