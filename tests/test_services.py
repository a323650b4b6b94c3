"""
Shipped notification services: log, email (Flask-Mail) and SMS (Twilio).
"""
import logging

import pytest
from twilio.base.exceptions import TwilioException

import services.sms as sms_module
from services.email import EmailService
from services.log import LogService
from services.sms import SmsService
from utils.mail import mail


class _User:
    email = "ada@example.com"
    mobile = "(201) 555-0123"
    phone = "+44 121 234 5678"


def test_log_service_writes_code(caplog):
    caplog.set_level(logging.INFO, logger="services.log")

    assert LogService().send("ada@example.com", "123456", reference="AB12CD") is True
    assert "123456" in caplog.text
    assert "AB12CD" in caplog.text


def test_email_service_needs_mail_settings(app_ctx):
    assert EmailService().send("ada@example.com", "123456") is False


def test_email_service_sends_code(app_ctx):
    app_ctx.config["MAIL_SERVER"] = "smtp.example.com"
    app_ctx.config["MAIL_USERNAME"] = "mailer"

    with mail.record_messages() as outbox:
        assert EmailService().send("ada@example.com", "123456", reference="AB12CD") is True

    assert len(outbox) == 1
    message = outbox[0]
    assert message.recipients == ["ada@example.com"]
    assert "123456" in message.body
    assert "AB12CD" in message.html


def test_email_service_destination(app_ctx):
    assert EmailService().destination_for(_User()) == "ada@example.com"


def test_sms_service_disabled_without_twilio_settings(app_ctx):
    assert SmsService().send("15550001111", "123456") is False


class _FakeMessages:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []

    def create(self, **kwargs):
        if self.fail:
            raise TwilioException("rejected")
        self.created.append(kwargs)


class _FakeClient:
    messages = None

    def __init__(self, sid, token, http_client=None):
        self.sid = sid
        self.http_client = http_client
        self.messages = _FakeClient.messages


@pytest.fixture
def twilio_app(app_ctx, monkeypatch):
    app_ctx.config.update(
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_FROM_NUMBER="+15550009999",
    )
    monkeypatch.setattr(sms_module, "Client", _FakeClient)
    return app_ctx


def test_sms_service_sends_through_twilio(twilio_app):
    _FakeClient.messages = _FakeMessages()

    assert SmsService().send("+15550001111", "123456", reference="AB12CD") is True

    created = _FakeClient.messages.created[0]
    assert created["to"] == "+15550001111"
    assert created["from_"] == "+15550009999"
    assert "123456" in created["body"]
    assert "AB12CD" in created["body"]


def test_sms_service_reports_twilio_errors(twilio_app):
    _FakeClient.messages = _FakeMessages(fail=True)
    assert SmsService().send("+15550001111", "123456") is False


def test_sms_destination_field_is_configurable(app_ctx):
    service = SmsService()
    assert service.destination_for(_User()) == "+12015550123"

    app_ctx.config["OTP_USER_PHONE_FIELD"] = "phone"
    assert service.destination_for(_User()) == "+441212345678"


def test_sms_destination_uses_configured_region(app_ctx):
    class _Local:
        mobile = "0121 234 5678"

    app_ctx.config["OTP_PHONE_REGION"] = "GB"
    assert SmsService().destination_for(_Local()) == "+441212345678"


@pytest.mark.parametrize("mobile", ["12345", "not a number", ""])
def test_sms_destination_rejects_unusable_numbers(app_ctx, mobile):
    class _Broken:
        pass

    _Broken.mobile = mobile
    assert SmsService().destination_for(_Broken()) is None
