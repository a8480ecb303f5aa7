from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import or_

from models import db
from models.booking import Booking
from models.payment import Payment
from models.user import User, ROLE_USER, ROLES
from security.password import hash_password, verify_password
from security.tokens import issue_token
from security.rbac import require_roles
from security.bruteforce import is_locked, register_failure, reset_attempts
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import AuthError, ConflictError, ForbiddenError, LockedError, NotFoundError, ValidationError


auth_bp = Blueprint("auth", __name__)


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _clean(data, key) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


@auth_bp.post("/signup")
def signup():
    data = request.get_json(silent=True) or {}
    name = _clean(data, "name")
    email = _clean(data, "email").lower()
    mobile = _clean(data, "mobile")
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    if not name or not email or not mobile or not password:
        raise ValidationError("All fields are required.")
    if not _is_valid_email(email):
        raise ValidationError("Invalid email")

    existing = User.query.filter(or_(User.email == email, User.mobile == mobile)).first()
    if existing:
        log_event("REGISTER_FAIL_EXISTS", metadata={"email": email, "mobile": mobile})
        raise ConflictError("Email or mobile already registered.")

    # Signup never grants admin, whatever the request asks for
    if data.get("role") not in (None, ROLE_USER):
        log_event("REGISTER_ROLE_IGNORED", metadata={"email": email, "requested_role": data.get("role")})

    user = User(
        name=name,
        email=email,
        mobile=mobile,
        password_hash=hash_password(password),
        role=ROLE_USER,
    )
    db.session.add(user)
    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(message="User registered successfully", user=user.to_dict()), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    # "email" carries either the email address or the mobile number
    identifier = _clean(data, "email") or _clean(data, "identifier") or _clean(data, "mobile")
    password = data.get("password") if isinstance(data.get("password"), str) else ""

    if not identifier or not password:
        raise ValidationError("Identifier and password are required")

    locked, seconds_left = is_locked(identifier)
    if locked:
        log_event("LOGIN_LOCKED", metadata={"identifier": identifier, "seconds_left": seconds_left})
        raise LockedError("Account temporarily locked. Try again later.", retry_after_seconds=seconds_left)

    user = User.query.filter(or_(User.email == identifier.lower(), User.mobile == identifier)).first()
    if not user or not verify_password(password, user.password_hash):
        fail_count, locked_now = register_failure(identifier)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            metadata={"identifier": identifier, "fail_count": fail_count, "locked_now": locked_now}
        )
        if locked_now:
            raise LockedError("Too many failed attempts. Account locked.", lockout_minutes=current_app.config.get("LOCKOUT_MINUTES", 1))
        raise AuthError("Invalid credentials")

    reset_attempts(identifier)
    token = issue_token(user)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return jsonify(success=True, message="Login successful", token=token, user=user.to_dict()), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(g.user.to_dict()), 200


# ---------- ADMIN: user management ----------
@auth_bp.get("/users")
@require_roles("admin")
def list_users():
    role_filter = (request.args.get("role") or "").strip().lower()
    q = User.query
    if role_filter:
        q = q.filter(User.role == role_filter)
    users = q.order_by(User.created_at.desc()).all()
    return jsonify([u.to_dict() for u in users]), 200


@auth_bp.put("/users/<int:user_id>/role")
@require_roles("admin")
def update_user_role(user_id: int):
    data = request.get_json(silent=True) or {}
    role = data.get("role")
    if role not in ROLES:
        raise ValidationError("Invalid role", allowed=list(ROLES))

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if user.id == g.user.id and role != "admin":
        raise ForbiddenError("Cannot remove your own admin role")

    user.role = role
    db.session.commit()

    log_event("ADMIN_UPDATE_ROLE", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"role": role})
    return jsonify(message="User role updated successfully", user=user.to_dict()), 200


@auth_bp.delete("/users/<int:user_id>")
@require_roles("admin")
def delete_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.id == g.user.id:
        raise ForbiddenError("Cannot delete your own account")

    Payment.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    Booking.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()

    log_event("ADMIN_DELETE_USER", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify(message="User deleted successfully"), 200
