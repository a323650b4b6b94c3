"""
Routes package for the OTP login application
"""
from routes.auth import auth_bp
from routes.otp import otp_bp, otp_required

__all__ = [
    'auth_bp',
    'otp_bp',
    'otp_required',
]
