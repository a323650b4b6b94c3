"""
Configuration: database URL handling and OTP settings validation.
"""
import pytest

from app import create_app
from config import Config, _normalize_database_url, validate_otp_config
from services.log import LogService


def _settings(**overrides):
    settings = {key: getattr(Config, key) for key in dir(Config) if key.isupper()}
    settings.update(overrides)
    return settings


def test_default_settings_are_valid():
    validate_otp_config(_settings())


@pytest.mark.parametrize("key, value", [
    ("OTP_LENGTH", 0),
    ("OTP_EXPIRY_MINUTES", -5),
    ("OTP_MAX_ATTEMPTS", 0),
    ("OTP_SEND_TIMEOUT_SECONDS", 0),
    ("OTP_MAX_SENDS_PER_HOUR", None),
    ("OTP_REFERENCE_LENGTH", "6"),
    ("OTP_MAX_ATTEMPTS", True),
    ("OTP_RESEND_COOLDOWN_SECONDS", -1),
])
def test_bad_numeric_settings_rejected(key, value):
    with pytest.raises(RuntimeError, match=key):
        validate_otp_config(_settings(**{key: value}))


def test_zero_cooldown_allowed():
    validate_otp_config(_settings(OTP_RESEND_COOLDOWN_SECONDS=0))


def test_default_service_must_be_configured():
    with pytest.raises(RuntimeError, match="OTP_SERVICE"):
        validate_otp_config(_settings(OTP_SERVICE="fax"))


@pytest.mark.parametrize("services", [{}, None, ["log"]])
def test_services_mapping_required(services):
    with pytest.raises(RuntimeError, match="OTP_SERVICES"):
        validate_otp_config(_settings(OTP_SERVICES=services))


def test_create_app_fails_fast_on_bad_config():
    class Broken(Config):
        SQLALCHEMY_DATABASE_URI = "sqlite://"
        OTP_SERVICE = "log"
        OTP_SERVICES = {"log": {"class": LogService}}
        OTP_MAX_ATTEMPTS = 0

    with pytest.raises(RuntimeError):
        create_app(Broken)


@pytest.mark.parametrize("url, expected", [
    ("postgres://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
    ("postgresql://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
    ("postgresql+psycopg2://u:p@h/db", "postgresql+psycopg2://u:p@h/db"),
    ("  sqlite://  ", "sqlite://"),
    ("", ""),
])
def test_normalize_database_url(url, expected):
    assert _normalize_database_url(url) == expected
