"""
Main Flask application entry point for the OTP login service
"""
import logging
import os

from flask import Flask, jsonify, request
from flask_login import LoginManager

from config import Config, validate_otp_config
from models import db
from models.user import User
from services.factory import ServiceFactory
from utils.mail import mail

# Initialize login manager (no DB access at import time)
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please log in to access this page."
login_manager.login_message_category = "info"


@login_manager.user_loader
def load_user(user_id):
    """Load user for Flask-Login (runs in request context)."""
    return db.session.get(User, int(user_id))


def create_app(config_class=Config):
    """Application factory pattern. DB init runs inside app_context; non-fatal on failure."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    validate_otp_config(app.config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    ServiceFactory.from_app_config(app)

    @app.errorhandler(500)
    def handle_500_error(e):
        if request.is_json:
            return jsonify({"success": False, "message": "Internal server error. Please try again later."}), 500
        return "Internal server error. Please try again later.", 500

    # Create tables and seed only inside app context; do not crash if DB temporarily unavailable
    with app.app_context():
        try:
            db.create_all()
            seed_user()
        except Exception as e:
            logging.getLogger(__name__).warning("Database init/seed skipped (non-fatal): %s", e)

    from routes import auth_bp, otp_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(otp_bp)

    from commands import create_user_command
    app.cli.add_command(create_user_command)

    return app


def seed_user():
    """Ensure the user named by SEED_USER_EMAIL exists. Skipped unless both email and password are set."""
    seed_email = (os.environ.get("SEED_USER_EMAIL") or "").strip().lower()
    seed_password = os.environ.get("SEED_USER_PASSWORD")
    if not seed_email or not seed_password:
        return

    from commands import upsert_user
    upsert_user(
        seed_email,
        seed_password,
        full_name=os.environ.get("SEED_USER_NAME"),
        mobile=os.environ.get("SEED_USER_MOBILE"),
    )
    print("Seed user ready. Email:", seed_email)


# WSGI entry point (Railway/Render): gunicorn app:app
app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "false").lower() in ("true", "1"))
