"""
Configuration for the OTP login Flask app.
Production (Railway/Render): uses DATABASE_URL only; fails if missing.
Local: DATABASE_URL or DB_* fallback.
"""
import os
from collections.abc import Mapping
from datetime import timedelta
from urllib.parse import quote_plus

from services.email import EmailService
from services.log import LogService
from services.sms import SmsService


def _is_production():
    """True when running on Railway, Render, or explicit production."""
    return (
        os.environ.get("RENDER") == "true"
        or os.environ.get("RAILWAY_ENVIRONMENT") is not None
        or os.environ.get("FLASK_ENV") == "production"
    )


def _env_flag(name, default="false"):
    return os.environ.get(name, default).lower() in ("true", "on", "1")


def _normalize_database_url(url):
    """Convert postgres:// to postgresql+psycopg2:// for SQLAlchemy/psycopg2."""
    if not url:
        return url
    url = url.strip()
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[11:]
    if url.startswith("postgresql://") and "psycopg2" not in url:
        return "postgresql+psycopg2://" + url[13:]
    return url


def _get_database_uri():
    """Database URI: production = DATABASE_URL only; local = DATABASE_URL or DB_*."""
    url = os.environ.get("DATABASE_URL")
    if _is_production():
        if not url or not url.strip():
            raise RuntimeError(
                "DATABASE_URL is required in production (Railway/Render). "
                "Set it in your service environment variables."
            )
        return _normalize_database_url(url.strip())

    if url and url.strip():
        return _normalize_database_url(url.strip())

    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "5432")
    name = os.environ.get("DB_NAME", "otplogin")
    user = os.environ.get("DB_USER", "otplogin")
    password = os.environ.get("DB_PASSWORD", "")
    if password:
        password = quote_plus(password)
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    SQLALCHEMY_DATABASE_URI = _get_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "true")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER") or os.environ.get("MAIL_USERNAME") or "noreply@otp.login"

    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN")
    TWILIO_FROM_NUMBER = os.environ.get("TWILIO_FROM_NUMBER")

    # One-time password login
    OTP_ENABLED = _env_flag("OTP_ENABLED", "true")
    OTP_SERVICE = os.environ.get("OTP_SERVICE", "email")
    OTP_SERVICES = {
        "email": {"class": EmailService},
        "sms": {"class": SmsService},
        "log": {"class": LogService},
    }
    OTP_LENGTH = int(os.environ.get("OTP_LENGTH") or 6)
    OTP_REFERENCE_LENGTH = int(os.environ.get("OTP_REFERENCE_LENGTH") or 6)
    OTP_EXPIRY_MINUTES = int(os.environ.get("OTP_EXPIRY_MINUTES") or 5)
    OTP_MAX_ATTEMPTS = int(os.environ.get("OTP_MAX_ATTEMPTS") or 5)
    OTP_SEND_TIMEOUT_SECONDS = float(os.environ.get("OTP_SEND_TIMEOUT_SECONDS") or 10)
    OTP_RESEND_COOLDOWN_SECONDS = int(os.environ.get("OTP_RESEND_COOLDOWN_SECONDS") or 30)
    OTP_MAX_SENDS_PER_HOUR = int(os.environ.get("OTP_MAX_SENDS_PER_HOUR") or 5)
    OTP_USER_PHONE_FIELD = os.environ.get("OTP_USER_PHONE_FIELD", "mobile")
    OTP_PHONE_REGION = os.environ.get("OTP_PHONE_REGION", "US").upper()
    OTP_REDIRECT_ENDPOINT = os.environ.get("OTP_REDIRECT_ENDPOINT", "auth.dashboard")


_POSITIVE_OTP_SETTINGS = (
    "OTP_LENGTH",
    "OTP_REFERENCE_LENGTH",
    "OTP_EXPIRY_MINUTES",
    "OTP_MAX_ATTEMPTS",
    "OTP_SEND_TIMEOUT_SECONDS",
    "OTP_MAX_SENDS_PER_HOUR",
)


def validate_otp_config(config):
    """Fail fast on OTP settings that would make the login flow unusable."""
    for key in _POSITIVE_OTP_SETTINGS:
        value = config.get(key)
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            raise RuntimeError(f"{key} must be a positive number, got {value!r}.")

    cooldown = config.get("OTP_RESEND_COOLDOWN_SECONDS")
    if not isinstance(cooldown, int) or isinstance(cooldown, bool) or cooldown < 0:
        raise RuntimeError(f"OTP_RESEND_COOLDOWN_SECONDS must be zero or more, got {cooldown!r}.")

    services = config.get("OTP_SERVICES")
    if not isinstance(services, Mapping) or not services:
        raise RuntimeError("OTP_SERVICES must be a non-empty mapping of service name to {'class': ...}.")

    default_service = config.get("OTP_SERVICE")
    if default_service not in services:
        raise RuntimeError(
            f"OTP_SERVICE {default_service!r} is not configured. "
            f"Choose one of: {', '.join(sorted(map(str, services)))}."
        )
