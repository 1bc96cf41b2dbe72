"""
Outbound channels: email (Resend or custom SMTP) and SMS (Twilio REST API)

Channels receive a detached snapshot of the workspace integration so they
never touch the database session while awaiting the provider.
"""

import asyncio
import logging
import smtplib
import ssl
import threading
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from io import StringIO
from typing import Optional

import httpx
import resend
from cryptography.fernet import Fernet, InvalidToken
from mjml import mjml_to_html

from ...config import (
    CREDENTIALS_ENCRYPTION_KEY,
    EMAIL_FROM_ADDRESS,
    RESEND_API_KEY,
    SMS_SEND_TIMEOUT,
    TWILIO_API_BASE,
)
from ...exceptions import ChannelUnavailable, TransientDispatchFailure
from .events import EngagementEvent
from .templates import render_email, render_sms

logger = logging.getLogger(__name__)

# resend reads its API key from module state; a send holds this lock from
# setting the key until the request returns
_resend_lock = threading.Lock()


@dataclass(frozen=True)
class IntegrationSettings:
    """Detached copy of an Integration row"""

    type: str
    provider: str
    config: dict = field(default_factory=dict)

    @classmethod
    def from_model(cls, integration) -> "IntegrationSettings":
        return cls(
            type=integration.type,
            provider=(integration.provider or "").lower(),
            config=dict(integration.config or {}),
        )


class CredentialCipher:
    """Fernet decryption for secrets stored inside integration config blobs"""

    def __init__(self, key: Optional[str] = CREDENTIALS_ENCRYPTION_KEY):
        self.fernet = Fernet(key.encode() if isinstance(key, str) else key) if key else None

    def decrypt(self, value: Optional[str]) -> Optional[str]:
        # Without a key, values are stored in plain text
        if not value or not self.fernet:
            return value
        try:
            return self.fernet.decrypt(value.encode()).decode()
        except InvalidToken as e:
            raise ChannelUnavailable("Failed to decrypt integration credentials") from e


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(StringIO(mjml_content))
    if result.errors:
        logger.warning(f"MJML compilation warnings: {result.errors}")
    return result.html


class EmailChannel:
    """Sends engagement emails through the workspace's email integration"""

    name = "email"

    def __init__(self, cipher: Optional[CredentialCipher] = None, default_api_key: Optional[str] = RESEND_API_KEY):
        self.cipher = cipher or CredentialCipher()
        self.default_api_key = default_api_key

    def sender_for(self, settings: IntegrationSettings, event: EngagementEvent) -> str:
        from_email = settings.config.get("from_email")
        if from_email:
            return f"{event.business_name} <{from_email}>"
        return EMAIL_FROM_ADDRESS

    async def send(self, settings: IntegrationSettings, event: EngagementEvent) -> str:
        if not event.contact_email:
            raise ChannelUnavailable("Contact has no email address")

        rendered = render_email(event)
        html_content = compile_mjml_to_html(rendered.mjml)
        sender = self.sender_for(settings, event)

        if settings.provider == "smtp":
            logger.info(f"📧 Sending {event.kind} email via custom SMTP: {settings.config.get('host')}")
            return await asyncio.to_thread(
                self._send_via_smtp, settings, event.contact_email, rendered.subject, html_content, rendered.text, sender
            )

        return await asyncio.to_thread(
            self._send_via_resend, settings, event, rendered.subject, html_content, rendered.text, sender
        )

    def _send_via_resend(
        self,
        settings: IntegrationSettings,
        event: EngagementEvent,
        subject: str,
        html_content: str,
        text_content: str,
        sender: str,
    ) -> str:
        api_key = self.cipher.decrypt(settings.config.get("api_key")) or self.default_api_key
        if not api_key:
            raise ChannelUnavailable("Email service not configured - no Resend API key")

        email_data = {
            "from": sender,
            "to": [event.contact_email],
            "subject": subject,
            "html": html_content,
            "text": text_content,
        }
        if event.reply_to:
            email_data["reply_to"] = event.reply_to

        logger.info(f"📧 Sending {event.kind} email via Resend to: {event.contact_email}")
        try:
            with _resend_lock:
                resend.api_key = api_key
                response = resend.Emails.send(email_data)
        except Exception as e:
            logger.error(f"❌ Email send error to {event.contact_email}: {e}")
            raise TransientDispatchFailure(self.name, f"Failed to send email: {e}") from e

        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response.get("id", "") if isinstance(response, dict) else str(response)

    def _send_via_smtp(
        self,
        settings: IntegrationSettings,
        to: str,
        subject: str,
        html_content: str,
        text_content: str,
        sender: str,
    ) -> str:
        config = settings.config
        host = config.get("host")
        if not host:
            raise ChannelUnavailable("SMTP integration has no host")
        port = int(config.get("port") or 587)
        username = config.get("username")
        password = self.cipher.decrypt(config.get("password"))
        use_tls = config.get("use_tls", True)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to
        msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            if port == 465:
                server = smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=30)
            else:
                server = smtplib.SMTP(host, port, timeout=30)

            with server:
                if port != 465 and use_tls:
                    server.starttls(context=ssl.create_default_context())
                if username:
                    server.login(username, password or "")
                server.sendmail(sender.split("<")[-1].rstrip(">"), [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Custom SMTP send failed: {e}")
            raise TransientDispatchFailure(self.name, f"Custom SMTP failed: {e}") from e

        logger.info(f"✅ Custom SMTP email sent successfully via {host}")
        return f"smtp-{datetime.utcnow().timestamp()}"


class SmsChannel:
    """Sends engagement SMS through the workspace's Twilio integration"""

    name = "sms"

    def __init__(
        self,
        cipher: Optional[CredentialCipher] = None,
        api_base: str = TWILIO_API_BASE,
        timeout: float = SMS_SEND_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cipher = cipher or CredentialCipher()
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send(self, settings: IntegrationSettings, event: EngagementEvent) -> str:
        to_phone = event.contact_phone
        if not to_phone:
            raise ChannelUnavailable("Contact has no phone number")
        if not to_phone.startswith("+"):
            raise TransientDispatchFailure(self.name, "Phone number must be in E.164 format (e.g., +1234567890)")

        config = settings.config
        account_sid = self.cipher.decrypt(config.get("account_sid"))
        auth_token = self.cipher.decrypt(config.get("auth_token"))
        if not account_sid or not auth_token:
            raise ChannelUnavailable("Twilio integration is missing credentials")

        data = {"To": to_phone, "Body": render_sms(event)}
        messaging_service_sid = self.cipher.decrypt(config.get("messaging_service_sid"))
        if messaging_service_sid:
            data["MessagingServiceSid"] = messaging_service_sid
        elif config.get("phone_number"):
            data["From"] = config["phone_number"]
        else:
            raise ChannelUnavailable("Twilio integration has no sender number or messaging service")

        logger.info(f"🚀 Sending {event.kind} SMS to Twilio API for {to_phone}")
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.api_base}/Accounts/{account_sid}/Messages.json",
                    auth=(account_sid, auth_token),
                    data=data,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"Twilio API error: {str(e)}")
            raise TransientDispatchFailure(self.name, str(e)) from e

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ SMS sent successfully: {event.kind} to {to_phone} (SID: {message_sid})")
            return message_sid or ""

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        raise TransientDispatchFailure(
            self.name, f"[{error_code}] {error_message}" if error_code else error_message
        )
