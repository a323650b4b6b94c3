"""
Helpers for OTP generation, delivery and verification.
"""
