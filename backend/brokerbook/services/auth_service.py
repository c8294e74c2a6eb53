# Overview: Service-layer operations for auth; signup with email OTP, login and password reset.

"""
Authentication Service

WHY: Every record belongs to a user, so every request must be attributable.
Uses bcrypt for password hashing and validates password strength.

FLOWS:
- signup -> OTP mailed -> verify OTP -> account verified, session issued
- login with email + password -> session issued
- forgot password (verified accounts only) -> OTP -> session -> set new password

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Emails are case-insensitive (stored lowercased)
- Session tokens managed separately (see session_service.py)
"""

import logging
import re

import bcrypt

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError
from . import otp_service, session_service
from .notification_service import NotificationError, email_channel
from .otp_service import OtpError, PURPOSE_SIGNUP, PURPOSE_PASSWORD_RESET

logger = logging.getLogger(__name__)


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Rejected auth step; carries the HTTP status the route should answer with."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (cost factor 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def find_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=normalize_email(email)).first()


def _mail_otp(email: str, code: str, purpose: str) -> bool:
    subject = "Verify your email" if purpose == PURPOSE_SIGNUP else "Reset your password"
    body = (
        f"Your verification code is {code}.\n\n"
        f"It expires in {int(otp_service.OTP_TTL.total_seconds() // 60)} minutes. "
        "If you did not request it, you can ignore this email."
    )
    try:
        return email_channel().send(email, subject, body)
    except NotificationError:
        logger.exception("Failed to send %s OTP", purpose.lower())
        return False


def _issue_and_send(user: User, purpose: str) -> bool:
    otp = otp_service.issue_otp(user.email, purpose=purpose, phone=user.phone)
    return _mail_otp(user.email, otp.otp, purpose)


def signup(name: str, email: str, phone: str | None, password: str) -> tuple[User, bool]:
    """
    Create an unverified account and mail it a verification code.

    Returns (user, otp_sent).
    """
    email = normalize_email(email)
    if not name or not email:
        raise AuthError("name and email are required")
    if find_user_by_email(email):
        raise ConflictError("Email already in use by another account")

    user = User(
        name=name.strip(),
        email=email,
        phone=(phone or "").strip() or None,
        password_hash=hash_password(password or ""),
    )
    db.session.add(user)
    db.session.commit()
    return user, _issue_and_send(user, PURPOSE_SIGNUP)


def _require_otp_inputs(email: str | None, code: str | None) -> None:
    if not code:
        raise AuthError("OTP is required")
    if not email:
        raise AuthError("Email is required")


def verify_signup_otp(
    email: str | None,
    code: str | None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Mark the account verified; returns (user, session token)."""
    _require_otp_inputs(email, code)
    user = find_user_by_email(email)
    if not user:
        raise AuthError("User not found", 404)
    if user.is_verified:
        raise AuthError("Email already verified")

    try:
        otp_service.consume_otp(user.email, code, purpose=PURPOSE_SIGNUP)
    except OtpError as e:
        db.session.rollback()
        raise AuthError(str(e)) from e

    user.is_verified = True
    user.last_login_at = utcnow()
    _, token = session_service.create_session(user, user_agent, ip_address, commit=False)
    db.session.commit()
    return user, token


def resend_signup_otp(email: str | None) -> bool:
    if not email:
        raise AuthError("Email is required")
    user = find_user_by_email(email)
    if not user:
        raise AuthError("User not found", 404)
    if user.is_verified:
        raise AuthError("Email already verified")
    return _issue_and_send(user, PURPOSE_SIGNUP)


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active User on valid credentials, None otherwise.
    Updates last_login_at on success.
    """
    user = find_user_by_email(email)
    if not user or not user.is_active:
        return None
    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def request_password_reset(email: str | None) -> bool:
    if not email:
        raise AuthError("Email is required")
    user = find_user_by_email(email)
    if not user or not user.is_verified:
        raise AuthError("No verified account found for this email", 404)
    return _issue_and_send(user, PURPOSE_PASSWORD_RESET)


def verify_password_reset_otp(
    email: str | None,
    code: str | None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Exchange a reset code for a session that may call set_new_password."""
    _require_otp_inputs(email, code)
    user = find_user_by_email(email)
    if not user or not user.is_verified:
        raise AuthError("No verified account found for this email", 404)

    try:
        otp_service.consume_otp(user.email, code, purpose=PURPOSE_PASSWORD_RESET)
    except OtpError as e:
        db.session.rollback()
        raise AuthError(str(e)) from e

    _, token = session_service.create_session(user, user_agent, ip_address, commit=False)
    db.session.commit()
    return user, token


def set_new_password(user: User, password: str | None, confirm_password: str | None, *, keep_session_id: int | None = None) -> None:
    """Change the password and sign out every other session."""
    if not password or not confirm_password:
        raise AuthError("password and confirm_password are required")
    if password != confirm_password:
        raise AuthError("Passwords do not match")

    user.password_hash = hash_password(password)
    db.session.commit()
    session_service.revoke_all_user_sessions(user.id, "Password changed", keep_session_id=keep_session_id)


def create_user(name: str, email: str, password: str, phone: str | None = None, *, verified: bool = True) -> User:
    """Administrative account creation (CLI); skips the OTP round trip."""
    email = normalize_email(email)
    if find_user_by_email(email):
        raise ConflictError("Email already in use by another account")
    user = User(
        name=name,
        email=email,
        phone=phone,
        password_hash=hash_password(password),
        is_verified=verified,
    )
    db.session.add(user)
    db.session.commit()
    return user
