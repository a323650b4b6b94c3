"""
Login OTP challenge models.
One active challenge per user; replaced on every new send.
"""
from models import db
from datetime import datetime


class OtpChallenge(db.Model):
    """
    Hashed one-time password awaiting verification.
    Removed on success, on expiry and on lockout.
    """
    __tablename__ = 'otp_challenges'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    code_hash = db.Column(db.String(255), nullable=False)
    reference = db.Column(db.String(16), nullable=True)
    service = db.Column(db.String(50), nullable=False)
    issued_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)

    def is_expired(self, now=None):
        return (now or datetime.utcnow()) > self.expires_at

    def attempts_exceeded(self, max_attempts):
        return (self.attempts or 0) >= max_attempts

    def __repr__(self):
        return f'<OtpChallenge user={self.user_id} ref={self.reference}>'


class OtpSendLog(db.Model):
    """Log of OTP sends per user for rate limiting (e.g. max 5 per hour)."""
    __tablename__ = 'otp_send_log'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    sent_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
