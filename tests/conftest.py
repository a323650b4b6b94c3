"""
Pytest configuration and fixtures for the OTP login tests.

Every test gets its own app bound to an in-memory SQLite database and a set of
fake notification services that record what they were asked to send.
"""
import os
import sys
import pathlib
import time

# Config reads the environment at import time; keep app.py's module-level app off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from app import create_app
from config import Config
from models import db
from models.user import User
from services.base import NotificationService


class RecordingService(NotificationService):
    name = "fake"
    destination_field = "email"
    outbox = []

    def send(self, destination, code, reference=None):
        RecordingService.outbox.append((destination, code, reference))
        return True


class RecordingSmsService(RecordingService):
    name = "fake-sms"
    destination_field = "mobile"


class RefusingService(NotificationService):
    name = "refusing"

    def send(self, destination, code, reference=None):
        return False


class ExplodingService(NotificationService):
    name = "exploding"

    def send(self, destination, code, reference=None):
        raise ConnectionError("gateway unreachable")


class SlowService(NotificationService):
    name = "slow"

    def send(self, destination, code, reference=None):
        time.sleep(1)
        return True


class OtpTestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MAIL_SERVER = None
    MAIL_USERNAME = None
    TWILIO_ACCOUNT_SID = None
    TWILIO_AUTH_TOKEN = None
    TWILIO_FROM_NUMBER = None
    OTP_ENABLED = True
    OTP_SERVICE = "fake"
    OTP_SERVICES = {
        "fake": {"class": RecordingService},
        "fake-sms": {"class": RecordingSmsService},
        "refusing": {"class": RefusingService},
        "exploding": {"class": ExplodingService},
        "slow": {"class": SlowService},
    }
    OTP_LENGTH = 6
    OTP_EXPIRY_MINUTES = 5
    OTP_MAX_ATTEMPTS = 5
    OTP_SEND_TIMEOUT_SECONDS = 2
    OTP_RESEND_COOLDOWN_SECONDS = 30
    OTP_MAX_SENDS_PER_HOUR = 5
    OTP_REDIRECT_ENDPOINT = "auth.dashboard"


USER_EMAIL = "ada@example.com"
USER_PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def _clear_outbox():
    RecordingService.outbox.clear()
    yield
    RecordingService.outbox.clear()


@pytest.fixture
def outbox():
    return RecordingService.outbox


@pytest.fixture
def app():
    app = create_app(OtpTestingConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def make_user(app):
    def _make(email=USER_EMAIL, password=USER_PASSWORD, mobile="+12015550123", full_name="Ada Lovelace"):
        with app.app_context():
            user = User(email=email, mobile=mobile, full_name=full_name)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def user(app_ctx, make_user):
    """A persisted user loaded in the active app context."""
    return db.session.get(User, make_user())


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in(client, make_user):
    """Client that passed the password step but not the OTP step."""
    make_user()
    response = client.post("/login", data={"identifier": USER_EMAIL, "password": USER_PASSWORD})
    assert response.status_code == 302
    return client
