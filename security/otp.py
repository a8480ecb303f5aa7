"""One-time login codes.

Codes live in the ``login_otps`` table (hashed, with an expiry), so every
app process sees the same store and expired rows are swept on each send.
"""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import or_

from models import db
from models.login_otp import LoginOTP
from models.user import User
from utils.emailer import send_email
from utils.errors import NotFoundError, UpstreamError, ValidationError
from utils.sms import send_sms


def _hash_code(identifier: str, code: str) -> str:
    key = current_app.config["SECRET_KEY"].encode("utf-8")
    return hmac.new(key, f"{identifier}:{code}".encode("utf-8"), hashlib.sha256).hexdigest()


def _generate_code() -> str:
    length = int(current_app.config.get("OTP_LENGTH", 6))
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def is_phone(identifier: str) -> bool:
    return identifier.isdigit() and len(identifier) >= 10


def find_user(identifier: str):
    return User.query.filter(or_(User.email == identifier, User.mobile == identifier)).first()


def _purge(identifier: str):
    now = datetime.utcnow()
    LoginOTP.query.filter(
        or_(LoginOTP.expires_at <= now, LoginOTP.identifier == identifier)
    ).delete(synchronize_session=False)


def _deliver(identifier: str, code: str, ttl_minutes: int):
    if "@" in identifier:
        return send_email(
            identifier,
            "Your Login OTP - Fast Breakfast",
            f"Your OTP is {code}. This code expires in {ttl_minutes} minutes.",
            html=f"<h2>Your OTP is <b>{code}</b></h2><p>This code expires in {ttl_minutes} minutes.</p>",
        )
    if is_phone(identifier):
        return send_sms(identifier, f"Your Fast Breakfast OTP is {code}. It expires in {ttl_minutes} minutes.")
    return False, "Identifier is neither an email address nor a phone number"


def send_otp(identifier: str) -> LoginOTP:
    identifier = (identifier or "").strip()
    if not identifier:
        raise ValidationError("Email or phone number required")

    if find_user(identifier) is None:
        raise NotFoundError("User not found")

    ttl = int(current_app.config.get("OTP_TTL_SECONDS", 300))
    code = _generate_code()

    _purge(identifier)
    row = LoginOTP(
        identifier=identifier,
        code_hash=_hash_code(identifier, code),
        expires_at=datetime.utcnow() + timedelta(seconds=ttl),
    )
    db.session.add(row)
    db.session.commit()

    ok, error = _deliver(identifier, code, max(ttl // 60, 1))
    if not ok:
        db.session.delete(row)
        db.session.commit()
        raise UpstreamError("Failed to send OTP", details=error)
    return row


def verify_otp(identifier: str, code) -> User:
    identifier = (identifier or "").strip()
    code = str(code).strip() if code is not None else ""

    row = (
        LoginOTP.query
        .filter_by(identifier=identifier, consumed_at=None)
        .order_by(LoginOTP.created_at.desc(), LoginOTP.id.desc())
        .first()
    )
    if not row:
        raise ValidationError("No OTP found or expired")

    if row.expires_at <= datetime.utcnow():
        db.session.delete(row)
        db.session.commit()
        raise ValidationError("OTP expired")

    max_attempts = int(current_app.config.get("OTP_MAX_ATTEMPTS", 5))
    if row.attempts >= max_attempts:
        raise ValidationError("Too many attempts. Request a new OTP.")

    if not code or not hmac.compare_digest(row.code_hash, _hash_code(identifier, code)):
        row.attempts += 1
        db.session.commit()
        raise ValidationError("Invalid OTP")

    row.consumed_at = datetime.utcnow()
    db.session.commit()

    user = find_user(identifier)
    if user is None:
        raise NotFoundError("User not found")
    return user
