"""Signed bearer tokens carrying ``{id, role}``.

Tokens are itsdangerous timed signatures over the app's ``SECRET_KEY``.
Each token embeds its own lifetime so password logins (12h) and OTP logins
(7d) can share one verifier.
"""
import time

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from utils.errors import AuthError

_SALT = "breakfast-auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_SALT)


def _max_ttl() -> int:
    return max(
        int(current_app.config.get("TOKEN_TTL_SECONDS", 12 * 60 * 60)),
        int(current_app.config.get("OTP_TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60)),
    )


def issue_token(user, ttl_seconds: int = None) -> str:
    if ttl_seconds is None:
        ttl_seconds = int(current_app.config.get("TOKEN_TTL_SECONDS", 12 * 60 * 60))
    payload = {"id": user.id, "role": user.role, "ttl": int(ttl_seconds)}
    return _serializer().dumps(payload)


def verify_token(token: str) -> dict:
    """Returns ``{"id": ..., "role": ...}`` or raises AuthError."""
    if not token:
        raise AuthError("Not authorized, no token.")
    try:
        payload, issued_at = _serializer().loads(token, max_age=_max_ttl(), return_timestamp=True)
    except SignatureExpired:
        raise AuthError("Token expired.")
    except BadSignature:
        raise AuthError("Not authorized, token failed.")

    if not isinstance(payload, dict) or "id" not in payload:
        raise AuthError("Not authorized, token failed.")

    ttl = int(payload.get("ttl") or 0)
    if time.time() - issued_at.timestamp() > ttl:
        raise AuthError("Token expired.")

    return {"id": payload["id"], "role": payload.get("role")}
