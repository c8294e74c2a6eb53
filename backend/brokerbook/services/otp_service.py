# Overview: One-time passcodes for email verification and password reset.

from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from ..extensions import db
from ..models import Otp
from ..time_utils import utcnow

OTP_TTL = timedelta(minutes=5)

PURPOSE_SIGNUP = "SIGNUP"
PURPOSE_PASSWORD_RESET = "PASSWORD_RESET"


class OtpError(Exception):
    """Invalid or expired code."""


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** 6):06d}"


def issue_otp(email: str, *, purpose: str, phone: str | None = None, now: datetime | None = None) -> Otp:
    """Replace any outstanding code for (email, purpose) with a fresh one."""
    issued_at = now or utcnow()
    db.session.query(Otp).filter_by(email=email, purpose=purpose).delete()
    otp = Otp(
        otp=generate_code(),
        email=email,
        phone=phone,
        purpose=purpose,
        expires_at=issued_at + OTP_TTL,
        created_at=issued_at,
    )
    db.session.add(otp)
    db.session.commit()
    return otp


def consume_otp(email: str, code: str, *, purpose: str, now: datetime | None = None) -> None:
    """
    Check a code and mark it for deletion.

    Does not commit: the caller commits together with whatever the code
    unlocks (verification flag, session), so a failure leaves the code usable.
    """
    otp = (
        db.session.query(Otp)
        .filter_by(email=email, purpose=purpose)
        .order_by(Otp.created_at.desc())
        .first()
    )
    if not otp or not secrets.compare_digest(otp.otp, str(code).strip()):
        raise OtpError("Invalid OTP")
    if otp.expires_at < (now or utcnow()):
        raise OtpError("OTP expired")
    db.session.delete(otp)


def cleanup_expired_otps(now: datetime | None = None) -> int:
    deleted = db.session.query(Otp).filter(Otp.expires_at < (now or utcnow())).delete()
    db.session.commit()
    return deleted
