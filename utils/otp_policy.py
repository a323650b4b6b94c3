"""
Login OTP policy: issue a challenge through the configured service and check
submitted codes against it.

The session is passed in explicitly (Flask's ``session`` during a request, any
mutable mapping elsewhere). Challenges live in the ``otp_challenges`` table,
one row per user, so a user never has two active challenges.
"""
import enum
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as SendTimeout
from datetime import datetime, timedelta

from flask import current_app

from models import db
from models.otp_challenge import OtpChallenge, OtpSendLog
from services.factory import get_service
from utils.otp_helper import generate_otp, generate_reference, hash_otp, verify_otp, otp_expires_at

SESSION_VERIFIED_KEY = "otp_passed_user"
SESSION_REFERENCE_KEY = "otp_reference"

SEND_LOG_RETENTION = timedelta(hours=24)


class OtpResult(enum.Enum):
    ISSUED = "issued"
    ACTIVE = "active"
    VERIFIED = "verified"
    REJECTED = "rejected"
    EXPIRED = "expired"
    DELIVERY_FAILED = "delivery_failed"
    THROTTLED = "throttled"
    UNKNOWN_SERVICE = "unknown_service"


CheckResult = namedtuple("CheckResult", ["status", "attempts_left"])


# ---------- session flag ----------

def mark_verified(sess, user):
    sess[SESSION_VERIFIED_KEY] = user.id
    sess.pop(SESSION_REFERENCE_KEY, None)


def is_verified(sess, user):
    """True when this session already passed the OTP step for ``user``."""
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    return sess.get(SESSION_VERIFIED_KEY) == user.id


def clear_verification(sess):
    sess.pop(SESSION_VERIFIED_KEY, None)
    sess.pop(SESSION_REFERENCE_KEY, None)


# ---------- challenge storage ----------

def get_active_challenge(user_id, now=None):
    """Return the user's non-expired challenge, or None."""
    challenge = db.session.get(OtpChallenge, user_id)
    if challenge is None or challenge.is_expired(now):
        return None
    return challenge


def _discard(challenge, sess=None):
    db.session.delete(challenge)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    if sess is not None:
        sess.pop(SESSION_REFERENCE_KEY, None)


def _purge_send_log(now):
    OtpSendLog.query.filter(OtpSendLog.sent_at <= now - SEND_LOG_RETENTION).delete()


def _sends_since(user_id, since):
    return OtpSendLog.query.filter(OtpSendLog.user_id == user_id, OtpSendLog.sent_at >= since).count()


def _last_send_at(user_id):
    row = (
        OtpSendLog.query.filter(OtpSendLog.user_id == user_id)
        .order_by(OtpSendLog.sent_at.desc())
        .first()
    )
    return row.sent_at if row else None


# ---------- delivery ----------

def _deliver(service, destination, code, reference, timeout):
    """Run ``service.send`` on a worker thread; False on falsy result, error or timeout."""
    app = current_app._get_current_object()
    label = getattr(service, "name", type(service).__name__)

    def _run():
        with app.app_context():
            return service.send(destination, code, reference=reference)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="otp-send")
    future = executor.submit(_run)
    try:
        return bool(future.result(timeout=timeout))
    except SendTimeout:
        app.logger.warning(f"OTP delivery via {label} timed out after {timeout}s")
        return False
    except Exception as e:
        app.logger.error(f"OTP delivery via {label} failed: {str(e)}", exc_info=True)
        return False
    finally:
        executor.shutdown(wait=False)


# ---------- issuance ----------

def issue_challenge(user, sess, service_name=None, code=None, now=None):
    """
    Send a fresh code to ``user`` and store its challenge, replacing any previous one.
    The previous challenge survives if delivery of the new code fails.
    """
    config = current_app.config
    now = now or datetime.utcnow()
    name = service_name or config["OTP_SERVICE"]

    service = get_service(name)
    if service is None:
        current_app.logger.warning(f"OTP service '{name}' is not available")
        return OtpResult.UNKNOWN_SERVICE

    _purge_send_log(now)
    if _sends_since(user.id, now - timedelta(hours=1)) >= config["OTP_MAX_SENDS_PER_HOUR"]:
        db.session.commit()
        return OtpResult.THROTTLED

    destination = service.destination_for(user)
    if not destination:
        current_app.logger.warning(f"User {user.id} has no {service.destination_field} for OTP service '{name}'")
        db.session.commit()
        return OtpResult.DELIVERY_FAILED

    code = code or generate_otp(config["OTP_LENGTH"])
    reference = generate_reference(config["OTP_REFERENCE_LENGTH"])
    if not _deliver(service, destination, code, reference, config["OTP_SEND_TIMEOUT_SECONDS"]):
        db.session.commit()
        return OtpResult.DELIVERY_FAILED

    challenge = db.session.get(OtpChallenge, user.id)
    if challenge is None:
        challenge = OtpChallenge(user_id=user.id)
        db.session.add(challenge)
    challenge.code_hash = hash_otp(code)
    challenge.reference = reference
    challenge.service = name
    challenge.issued_at = now
    challenge.expires_at = otp_expires_at(config["OTP_EXPIRY_MINUTES"], now)
    challenge.attempts = 0
    db.session.add(OtpSendLog(user_id=user.id, sent_at=now))
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    sess[SESSION_REFERENCE_KEY] = reference
    current_app.logger.info(f"OTP issued for user {user.id} via {name} (ref={reference})")
    return OtpResult.ISSUED


def _cooling_down(user_id, now):
    cooldown = current_app.config["OTP_RESEND_COOLDOWN_SECONDS"]
    last = _last_send_at(user_id)
    return last is not None and (now - last).total_seconds() < cooldown


def ensure_challenge(user, sess, now=None):
    """
    Issue a challenge unless one is already active. Showing the form twice sends once.
    A replacement for a spent or locked-out challenge waits out the resend cooldown.
    """
    now = now or datetime.utcnow()
    if get_active_challenge(user.id, now) is not None:
        return OtpResult.ACTIVE
    if _cooling_down(user.id, now):
        return OtpResult.THROTTLED
    return issue_challenge(user, sess, now=now)


def resend_challenge(user, sess, now=None):
    """Issue a new code, refusing while the last send is inside the cooldown."""
    now = now or datetime.utcnow()
    if _cooling_down(user.id, now):
        return OtpResult.THROTTLED
    return issue_challenge(user, sess, now=now)


# ---------- verification ----------

def check_code(user, submitted, sess, now=None):
    """
    Check ``submitted`` against the user's challenge.

    Expired or missing challenge wins over everything else; a locked-out
    challenge is rejected even with the right code.
    """
    now = now or datetime.utcnow()
    max_attempts = current_app.config["OTP_MAX_ATTEMPTS"]
    challenge = db.session.get(OtpChallenge, user.id)

    if challenge is None:
        return CheckResult(OtpResult.EXPIRED, 0)

    if challenge.is_expired(now):
        _discard(challenge, sess)
        return CheckResult(OtpResult.EXPIRED, 0)

    if challenge.attempts_exceeded(max_attempts):
        current_app.logger.warning(f"OTP locked out for user {user.id}")
        _discard(challenge, sess)
        return CheckResult(OtpResult.REJECTED, 0)

    if verify_otp((submitted or "").strip(), challenge.code_hash):
        attempts_left = max_attempts - (challenge.attempts or 0)
        _discard(challenge, sess)
        mark_verified(sess, user)
        current_app.logger.info(f"OTP verified for user {user.id}")
        return CheckResult(OtpResult.VERIFIED, attempts_left)

    challenge.attempts = (challenge.attempts or 0) + 1
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return CheckResult(OtpResult.REJECTED, max(0, max_attempts - challenge.attempts))
