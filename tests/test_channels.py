"""Tests for the email and SMS channel senders."""

import asyncio
import smtplib
import time

import httpx
import pytest
from cryptography.fernet import Fernet

from frontdesk.domain.notifications import channels
from frontdesk.domain.notifications.channels import (
    CredentialCipher,
    EmailChannel,
    IntegrationSettings,
    SmsChannel,
)
from frontdesk.domain.notifications.events import EngagementEvent
from frontdesk.exceptions import ChannelUnavailable, TransientDispatchFailure

KEY = Fernet.generate_key().decode()


def _event(**overrides) -> EngagementEvent:
    data = {
        "kind": "welcome",
        "workspace_id": "ws-1",
        "entity_id": "contact-1",
        "contact_name": "Ana",
        "contact_email": "ana@example.com",
        "contact_phone": "+15550001111",
        "business_name": "Bright Smiles",
        "reply_to": "hello@brightsmiles.test",
    }
    data.update(overrides)
    return EngagementEvent(**data)


def _twilio(**config) -> IntegrationSettings:
    base = {"account_sid": "AC123", "auth_token": "secret", "phone_number": "+15557770000"}
    base.update(config)
    return IntegrationSettings(type="sms", provider="twilio", config=base)


# ============================================================================
# CREDENTIALS
# ============================================================================


def test_cipher_without_key_returns_value_as_stored():
    assert CredentialCipher(key=None).decrypt("plain") == "plain"


def test_cipher_decrypts_fernet_tokens():
    token = Fernet(KEY.encode()).encrypt(b"AC123").decode()
    assert CredentialCipher(key=KEY).decrypt(token) == "AC123"


def test_cipher_rejects_foreign_tokens_as_unavailable():
    token = Fernet(Fernet.generate_key()).encrypt(b"AC123").decode()
    with pytest.raises(ChannelUnavailable):
        CredentialCipher(key=KEY).decrypt(token)


# ============================================================================
# SMS
# ============================================================================


async def test_sms_posts_to_twilio_and_returns_sid():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content.decode()
        return httpx.Response(201, json={"sid": "SM42"})

    channel = SmsChannel(cipher=CredentialCipher(key=None), transport=httpx.MockTransport(handler))
    sid = await channel.send(_twilio(), _event())

    assert sid == "SM42"
    assert seen["url"].endswith("/Accounts/AC123/Messages.json")
    assert "From=%2B15557770000" in seen["body"]
    assert "Bright+Smiles" in seen["body"]


async def test_sms_prefers_messaging_service():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        return httpx.Response(201, json={"sid": "SM43"})

    channel = SmsChannel(cipher=CredentialCipher(key=None), transport=httpx.MockTransport(handler))
    await channel.send(_twilio(messaging_service_sid="MG1"), _event())

    assert "MessagingServiceSid=MG1" in seen["body"]
    assert "From=" not in seen["body"]


async def test_sms_provider_error_is_transient_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

    channel = SmsChannel(cipher=CredentialCipher(key=None), transport=httpx.MockTransport(handler))
    with pytest.raises(TransientDispatchFailure, match=r"\[21211\] Invalid 'To' Phone Number"):
        await channel.send(_twilio(), _event())


async def test_sms_network_error_is_transient_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    channel = SmsChannel(cipher=CredentialCipher(key=None), transport=httpx.MockTransport(handler))
    with pytest.raises(TransientDispatchFailure):
        await channel.send(_twilio(), _event())


async def test_sms_without_credentials_is_unavailable():
    channel = SmsChannel(cipher=CredentialCipher(key=None))
    with pytest.raises(ChannelUnavailable):
        await channel.send(_twilio(auth_token=None), _event())


async def test_sms_without_sender_is_unavailable():
    channel = SmsChannel(cipher=CredentialCipher(key=None))
    with pytest.raises(ChannelUnavailable):
        await channel.send(_twilio(phone_number=None), _event())


# ============================================================================
# EMAIL
# ============================================================================


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    def fake_send(params):
        sent.append(params)
        return {"id": "re_123"}

    monkeypatch.setattr(channels.resend.Emails, "send", staticmethod(fake_send))
    monkeypatch.setattr(channels, "compile_mjml_to_html", lambda mjml: "<html>compiled</html>")
    return sent


async def test_email_via_resend_uses_integration_key(sent_emails):
    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key=None)
    settings = IntegrationSettings(type="email", provider="resend", config={"api_key": "re_key"})

    message_id = await channel.send(settings, _event())

    assert message_id == "re_123"
    [params] = sent_emails
    assert params["to"] == ["ana@example.com"]
    assert params["html"] == "<html>compiled</html>"
    assert params["reply_to"] == "hello@brightsmiles.test"
    assert "Bright Smiles" in params["subject"]
    assert channels.resend.api_key == "re_key"


async def test_email_with_custom_sender(sent_emails):
    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key="re_default")
    settings = IntegrationSettings(type="email", provider="resend", config={"from_email": "desk@bright.test"})

    await channel.send(settings, _event())

    assert sent_emails[0]["from"] == "Bright Smiles <desk@bright.test>"


async def test_email_without_any_api_key_is_unavailable(sent_emails):
    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key=None)
    settings = IntegrationSettings(type="email", provider="resend", config={})

    with pytest.raises(ChannelUnavailable):
        await channel.send(settings, _event())
    assert sent_emails == []


async def test_resend_error_is_transient_failure(monkeypatch):
    def failing_send(params):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(channels.resend.Emails, "send", staticmethod(failing_send))
    monkeypatch.setattr(channels, "compile_mjml_to_html", lambda mjml: "<html></html>")

    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key="re_default")
    settings = IntegrationSettings(type="email", provider="resend", config={})
    with pytest.raises(TransientDispatchFailure, match="rate limited"):
        await channel.send(settings, _event())


async def test_email_without_address_is_unavailable():
    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key="re_default")
    settings = IntegrationSettings(type="email", provider="resend", config={})
    with pytest.raises(ChannelUnavailable):
        await channel.send(settings, _event(contact_email=None))


async def test_concurrent_resend_sends_keep_their_own_keys(monkeypatch):
    seen = []

    def slow_send(params):
        key_at_start = channels.resend.api_key
        time.sleep(0.1)
        seen.append((params["to"][0], key_at_start, channels.resend.api_key))
        return {"id": f"re_{params['to'][0]}"}

    monkeypatch.setattr(channels.resend.Emails, "send", staticmethod(slow_send))
    monkeypatch.setattr(channels, "compile_mjml_to_html", lambda mjml: "<html></html>")

    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key=None)
    first = IntegrationSettings(type="email", provider="resend", config={"api_key": "KEY_A"})
    second = IntegrationSettings(type="email", provider="resend", config={"api_key": "KEY_B"})

    await asyncio.gather(
        channel.send(first, _event(contact_email="a@example.com")),
        channel.send(second, _event(contact_email="b@example.com")),
    )

    assert sorted(seen) == [
        ("a@example.com", "KEY_A", "KEY_A"),
        ("b@example.com", "KEY_B", "KEY_B"),
    ]


class FakeSMTP:
    """smtplib.SMTP stand-in recording calls and whether it was closed"""

    instances = []
    login_error = None

    def __init__(self, host, port, timeout=None, **kwargs):
        self.host = host
        self.port = port
        self.closed = False
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))
        if FakeSMTP.login_error is not None:
            raise FakeSMTP.login_error

    def sendmail(self, from_addr, to_addrs, msg):
        self.calls.append(("sendmail", from_addr, tuple(to_addrs)))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.login_error = None
    monkeypatch.setattr(channels.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(channels, "compile_mjml_to_html", lambda mjml: "<html></html>")
    return FakeSMTP


def _smtp_settings(**config) -> IntegrationSettings:
    base = {"host": "mail.bright.test", "port": 587, "username": "desk", "password": "pw", "from_email": "desk@bright.test"}
    base.update(config)
    return IntegrationSettings(type="email", provider="smtp", config=base)


async def test_smtp_send_closes_connection(fake_smtp):
    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key=None)

    message_id = await channel.send(_smtp_settings(), _event())

    assert message_id.startswith("smtp-")
    [server] = fake_smtp.instances
    assert server.calls == [
        "starttls",
        ("login", "desk", "pw"),
        ("sendmail", "desk@bright.test", ("ana@example.com",)),
    ]
    assert server.closed is True


async def test_smtp_login_failure_still_closes_connection(fake_smtp):
    fake_smtp.login_error = smtplib.SMTPAuthenticationError(535, b"bad credentials")
    channel = EmailChannel(cipher=CredentialCipher(key=None), default_api_key=None)

    with pytest.raises(TransientDispatchFailure, match="Custom SMTP failed"):
        await channel.send(_smtp_settings(), _event())

    [server] = fake_smtp.instances
    assert server.closed is True
    assert not any(call[0] == "sendmail" for call in server.calls if isinstance(call, tuple))
