"""
SMS delivery of login codes through the Twilio REST client.
"""
import logging

from flask import current_app
from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from services.base import NotificationService
from utils.phone import get_phone_last4, normalize_phone

logger = logging.getLogger(__name__)


class SmsService(NotificationService):
    """Thin wrapper around the Twilio REST client. The client is built on first send."""

    name = "sms"

    @property
    def destination_field(self):
        return current_app.config.get("OTP_USER_PHONE_FIELD", "mobile")

    def destination_for(self, user):
        """The user's phone in E.164, or None when it cannot be parsed."""
        raw = super().destination_for(user)
        if raw is None:
            return None
        try:
            return normalize_phone(raw, current_app.config.get("OTP_PHONE_REGION", "US"))
        except ValueError as e:
            logger.warning("Unusable phone number ending %s: %s", get_phone_last4(raw), e)
            return None

    def _client(self):
        config = current_app.config
        sid = config.get("TWILIO_ACCOUNT_SID")
        token = config.get("TWILIO_AUTH_TOKEN")
        missing = [
            key
            for key, value in [
                ("TWILIO_ACCOUNT_SID", sid),
                ("TWILIO_AUTH_TOKEN", token),
                ("TWILIO_FROM_NUMBER", config.get("TWILIO_FROM_NUMBER")),
            ]
            if not value
        ]
        if missing:
            logger.info("Twilio SMS disabled; missing settings: %s", ", ".join(missing))
            return None
        http_client = TwilioHttpClient(timeout=config.get("OTP_SEND_TIMEOUT_SECONDS"))
        return Client(sid, token, http_client=http_client)

    def build_body(self, code, reference=None):
        minutes = current_app.config.get("OTP_EXPIRY_MINUTES", 5)
        body = f"Your login code is {code}. It expires in {minutes} minutes."
        if reference:
            body += f" Ref: {reference}"
        return body

    def send(self, destination, code, reference=None) -> bool:
        client = self._client()
        if client is None:
            return False
        try:
            client.messages.create(
                from_=current_app.config["TWILIO_FROM_NUMBER"],
                to=destination,
                body=self.build_body(code, reference),
            )
            return True
        except TwilioException as exc:
            logger.warning("Twilio SMS send failed: %s", exc)
            return False
