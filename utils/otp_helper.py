"""
OTP generation and hashing for login verification.
OTPs are hashed before storage; never store plain OTP in DB.
"""
import hashlib
import hmac
import secrets
import string
from datetime import datetime, timedelta

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_otp(length: int = 6) -> str:
    """Generate a secure numeric OTP."""
    return ''.join(secrets.choice(string.digits) for _ in range(length))


def generate_reference(length: int = 6) -> str:
    """Short label shown on the form and in the message; not a secret."""
    return ''.join(secrets.choice(REFERENCE_ALPHABET) for _ in range(length))


def hash_otp(otp: str) -> str:
    """Hash OTP for storage."""
    return hashlib.sha256(otp.encode('utf-8')).hexdigest()


def verify_otp(plain_otp: str, otp_hash: str) -> bool:
    """Verify a plain OTP against stored hash."""
    if not plain_otp or not otp_hash:
        return False
    return hmac.compare_digest(hash_otp(plain_otp), otp_hash)


def otp_expires_at(minutes: int, now: datetime = None) -> datetime:
    """Return expiry datetime for a new OTP."""
    return (now or datetime.utcnow()) + timedelta(minutes=minutes)
