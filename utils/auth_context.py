from functools import wraps
from flask import g, request
from models import db
from models.user import User
from security.tokens import verify_token
from utils.errors import AuthError

def _bearer_token():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header.split(" ", 1)[1].strip() or None

def load_current_user():
    """Attach the token's user to ``g``; malformed tokens are left for login_required."""
    g.user = None
    g.auth_error = None
    token = _bearer_token()
    if not token:
        return
    try:
        claims = verify_token(token)
    except AuthError as exc:
        g.auth_error = exc
        return
    g.user = db.session.get(User, claims["id"])
    if g.user is None:
        g.auth_error = AuthError("User not found.")

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            raise getattr(g, "auth_error", None) or AuthError("Not authorized, no token.")
        return fn(*args, **kwargs)
    return wrapper
