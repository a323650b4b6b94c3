"""
CLI commands: create or reset a login user.
Usage: flask --app app create-user --email a@b.c --password secret
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from models import db
from models.user import User
from utils.phone import normalize_phone


def upsert_user(email, password, full_name=None, mobile=None):
    """
    Create the user or reset its password. Returns (user, created).
    Mobile is stored in E.164; an unparseable number raises ValueError.
    """
    email = email.strip().lower()
    if mobile:
        mobile = normalize_phone(mobile, current_app.config.get("OTP_PHONE_REGION", "US"))
    user = User.query.filter_by(email=email).first()
    created = user is None
    if created:
        user = User(email=email, full_name=full_name or email.split('@')[0])
        db.session.add(user)
    elif full_name:
        user.full_name = full_name
    if mobile:
        user.mobile = mobile
    user.is_active = True
    user.set_password(password)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user, created


@click.command('create-user')
@click.option('--email', required=True)
@click.option('--password', required=True, prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--name', 'full_name', default=None)
@click.option('--mobile', default=None)
@with_appcontext
def create_user_command(email, password, full_name, mobile):
    """Create or reset a user account."""
    try:
        user, created = upsert_user(email, password, full_name, mobile)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--mobile")
    action = "created" if created else "updated"
    click.echo(f"[SUCCESS] User {user.email} {action}.")
