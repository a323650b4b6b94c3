"""
Email utility functions
"""
from flask_mail import Mail, Message
from flask import current_app

mail = Mail()


def mail_configured():
    """True when Flask-Mail is initialized and has a server and username."""
    return bool(
        "mail" in current_app.extensions
        and current_app.config.get('MAIL_SERVER')
        and current_app.config.get('MAIL_USERNAME')
    )


def send_login_otp_email(email: str, otp: str, reference: str = None) -> None:
    """
    Send login OTP email. Subject: "Your Login Code".
    Uses clean HTML template; fallback plain body.
    """
    # Check if mail is properly initialized
    if "mail" not in current_app.extensions:
        raise RuntimeError("Mail extension not initialized. Check app configuration.")

    if not current_app.config.get('MAIL_SERVER'):
        raise RuntimeError("MAIL_SERVER not configured. Please set MAIL_SERVER environment variable.")

    if not current_app.config.get('MAIL_USERNAME'):
        raise RuntimeError("MAIL_USERNAME not configured. Please set MAIL_USERNAME environment variable.")

    minutes = current_app.config.get('OTP_EXPIRY_MINUTES', 5)
    subject = "Your Login Code"
    body = f"Your login code is: {otp}. It expires in {minutes} minutes. Do not share this code."
    if reference:
        body += f" Reference: {reference}."
    html = _otp_email_html(otp, reference, minutes)
    msg = Message(
        subject=subject,
        recipients=[email],
        body=body,
        html=html,
    )
    try:
        mail.send(msg)
    except Exception as e:
        current_app.logger.error(f"SMTP error sending login code to {email}: {str(e)}", exc_info=True)
        raise


def _otp_email_html(otp: str, reference: str, minutes: int) -> str:
    """Clean HTML template for OTP email."""
    reference_line = ""
    if reference:
        reference_line = f'<p style="color: #666;">Reference: <strong>{reference}</strong></p>'
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>Your Login Code</title></head>
    <body style="font-family: system-ui, sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">
        <h2 style="color: #1a1a2e;">Your Login Code</h2>
        <p>Use the code below to finish signing in:</p>
        <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px; color: #16213e;">{otp}</p>
        {reference_line}
        <p style="color: #666;">This code expires in {minutes} minutes. Do not share it with anyone.</p>
        <hr style="border: none; border-top: 1px solid #eee; margin: 24px 0;">
        <p style="font-size: 12px; color: #999;">If you did not try to sign in, change your password.</p>
    </body>
    </html>
    """
