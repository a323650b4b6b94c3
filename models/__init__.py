"""
Models package for the OTP login application
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Import all models here to ensure they're registered
from models.user import User
from models.otp_challenge import OtpChallenge, OtpSendLog

__all__ = [
    'db',
    'User',
    'OtpChallenge',
    'OtpSendLog',
]
