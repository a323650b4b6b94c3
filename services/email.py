"""
Email delivery of login codes through Flask-Mail.
"""
from flask import current_app

from services.base import NotificationService


class EmailService(NotificationService):
    name = "email"
    destination_field = "email"

    def send(self, destination, code, reference=None) -> bool:
        from utils.mail import mail_configured, send_login_otp_email

        if not mail_configured():
            current_app.logger.warning("Email OTP skipped: MAIL_SERVER/MAIL_USERNAME not configured")
            return False
        send_login_otp_email(destination, code, reference)
        return True
