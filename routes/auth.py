"""
Authentication routes: password login, logout and the OTP-protected dashboard
"""
from flask import render_template, request, redirect, url_for, flash, Blueprint, session, current_app
from flask_login import login_user, logout_user, login_required, current_user

from models.user import User
from routes.otp import otp_required
from utils.otp_policy import clear_verification
from utils.phone import normalize_phone

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """User login - accepts mobile or email, then hands over to the OTP step"""
    if current_user.is_authenticated:
        return redirect(url_for('auth.dashboard'))

    if request.method == 'POST':
        identifier = request.form.get('identifier', '').strip()
        password = request.form.get('password', '')

        if not identifier or not password:
            flash('Please enter both mobile/email and password.', 'error')
            return render_template('login.html'), 400

        # Normalize identifier: lowercase for email, E.164 for mobile
        user = None
        if '@' not in identifier:
            try:
                mobile = normalize_phone(identifier, current_app.config.get('OTP_PHONE_REGION', 'US'))
            except ValueError:
                mobile = None
            if mobile:
                user = User.query.filter_by(mobile=mobile).first()
        if not user:
            user = User.query.filter_by(email=identifier.lower()).first()

        if not user or not user.check_password(password):
            flash('Invalid credentials. Please check your details and try again.', 'error')
            return render_template('login.html'), 401

        if not user.is_active:
            flash('Your account is inactive. Please contact support.', 'error')
            return render_template('login.html'), 403

        clear_verification(session)
        login_user(user)
        return redirect(url_for('otp.view', next=request.args.get('next')))

    return render_template('login.html')


@auth_bp.route('/logout')
@login_required
def logout():
    """User logout"""
    clear_verification(session)
    logout_user()
    flash('You have been logged out successfully.', 'info')
    return redirect(url_for('auth.login'))


@auth_bp.route('/')
@otp_required
def dashboard():
    return render_template('dashboard.html', user=current_user)
