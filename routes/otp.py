"""
OTP login routes: verification form, code check and resend
"""
from collections.abc import Mapping
from functools import wraps

from flask import render_template, request, redirect, url_for, flash, Blueprint, jsonify, current_app, session
from flask_login import login_required, current_user

from models import db
from utils.otp_policy import (
    OtpResult,
    check_code,
    ensure_challenge,
    get_active_challenge,
    is_verified,
    resend_challenge,
)

otp_bp = Blueprint('otp', __name__)

GENERIC_ERROR = "Something went wrong. Please try again later."
OTP_VERIFY_FAIL_MSG = "Invalid code. Please try again."
OTP_EXPIRED_MSG = "Your code has expired. Please request a new one."
OTP_BLOCKED_MSG = "Too many attempts. Please request a new code."
OTP_SEND_FAIL_MSG = "Unable to send verification code. Please try again later."
OTP_RATE_LIMIT_MSG = "Too many requests. Please try again later."
OTP_RESEND_SUCCESS_MSG = "A new verification code has been sent."
OTP_VERIFY_SUCCESS_MSG = "Login verified."

_SEND_FAILURES = (OtpResult.DELIVERY_FAILED, OtpResult.UNKNOWN_SERVICE)


def otp_required(f):
    """Decorator to require a password login that has also passed the OTP step"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if current_app.config.get('OTP_ENABLED', True) and not is_verified(session, current_user):
            return redirect(url_for('otp.view', next=request.path))
        return f(*args, **kwargs)
    return decorated_function


def _wants_json():
    return request.is_json or request.accept_mimetypes.best == 'application/json'


def _next_page():
    next_page = request.args.get('next') or request.form.get('next')
    # Only same-site relative paths
    if next_page and next_page.startswith('/') and not next_page.startswith('//'):
        return next_page
    return None


def _submitted_code():
    """The posted code as a string; JSON numbers are accepted, other shapes count as blank."""
    data = request.get_json(silent=True)
    if not isinstance(data, Mapping):
        data = request.form
    value = data.get('code')
    if value is None or isinstance(value, (bool, list, dict)):
        return ''
    return str(value).strip()


def _redirect_after_verify():
    return redirect(_next_page() or url_for(current_app.config['OTP_REDIRECT_ENDPOINT']))


def _render_form(error=None, result=None, status=200):
    challenge = get_active_challenge(current_user.id)
    return render_template(
        'otp/verify.html',
        challenge=challenge,
        error=error,
        result=result.value if result else None,
        next_page=_next_page(),
    ), status


@otp_bp.route('/login/verify', methods=['GET'])
@login_required
def view():
    """Verification form. Sends a code if none is active."""
    if not current_app.config.get('OTP_ENABLED', True) or is_verified(session, current_user):
        return _redirect_after_verify()

    try:
        result = ensure_challenge(current_user, session)
    except Exception as e:
        current_app.logger.error(f"Error issuing OTP for user {current_user.id}: {str(e)}", exc_info=True)
        db.session.rollback()
        return _render_form(GENERIC_ERROR, status=500)

    if result in _SEND_FAILURES:
        return _render_form(OTP_SEND_FAIL_MSG, result, 503)
    if result is OtpResult.THROTTLED:
        return _render_form(OTP_RATE_LIMIT_MSG, result, 429)
    return _render_form()


@otp_bp.route('/login/check', methods=['POST'])
@login_required
def verify():
    """Check the submitted code. Input: code (form or JSON)."""
    if not current_app.config.get('OTP_ENABLED', True) or is_verified(session, current_user):
        if _wants_json():
            return jsonify({"success": True, "message": OTP_VERIFY_SUCCESS_MSG, "result": OtpResult.VERIFIED.value})
        return _redirect_after_verify()

    try:
        outcome = check_code(current_user, _submitted_code(), session)
    except Exception as e:
        current_app.logger.error(f"Error verifying OTP for user {current_user.id}: {str(e)}", exc_info=True)
        db.session.rollback()
        if _wants_json():
            return jsonify({"success": False, "message": GENERIC_ERROR}), 500
        return _render_form(GENERIC_ERROR, status=500)

    if outcome.status is OtpResult.VERIFIED:
        if _wants_json():
            return jsonify({"success": True, "message": OTP_VERIFY_SUCCESS_MSG, "result": outcome.status.value})
        flash(OTP_VERIFY_SUCCESS_MSG, 'success')
        return _redirect_after_verify()

    if outcome.status is OtpResult.EXPIRED:
        message = OTP_EXPIRED_MSG
    elif outcome.attempts_left == 0:
        message = OTP_BLOCKED_MSG
    else:
        message = OTP_VERIFY_FAIL_MSG

    if _wants_json():
        return jsonify({
            "success": False,
            "message": message,
            "result": outcome.status.value,
            "attempts_left": outcome.attempts_left,
        }), 422
    return _render_form(message, outcome.status, 422)


@otp_bp.route('/login/resend', methods=['POST'])
@login_required
def resend():
    """Send a new code, subject to the resend cooldown and hourly limit."""
    if not current_app.config.get('OTP_ENABLED', True) or is_verified(session, current_user):
        return _redirect_after_verify()

    try:
        result = resend_challenge(current_user, session)
    except Exception as e:
        current_app.logger.error(f"Error resending OTP for user {current_user.id}: {str(e)}", exc_info=True)
        db.session.rollback()
        result = None

    if result is OtpResult.ISSUED:
        if _wants_json():
            return jsonify({"success": True, "message": OTP_RESEND_SUCCESS_MSG, "result": result.value})
        flash(OTP_RESEND_SUCCESS_MSG, 'success')
        return redirect(url_for('otp.view', next=_next_page()))

    if result is OtpResult.THROTTLED:
        message, status = OTP_RATE_LIMIT_MSG, 429
    elif result in _SEND_FAILURES:
        message, status = OTP_SEND_FAIL_MSG, 422
    else:
        message, status = GENERIC_ERROR, 500

    if _wants_json():
        return jsonify({"success": False, "message": message, "result": result.value if result else None}), status
    return _render_form(message, result, status)
