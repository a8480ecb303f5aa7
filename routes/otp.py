from flask import Blueprint, request, jsonify, current_app

from security import otp
from security.tokens import issue_token
from utils.audit import log_event

otp_bp = Blueprint("otp", __name__, url_prefix="/otp")


def _identifier(data) -> str:
    value = data.get("email") or data.get("phone") or data.get("emailOrPhone")
    return value.strip() if isinstance(value, str) else ""


@otp_bp.post("/send")
def send_otp():
    data = request.get_json(silent=True) or {}
    identifier = _identifier(data)
    otp.send_otp(identifier)
    log_event("OTP_SENT", metadata={"identifier": identifier})
    return jsonify(success=True, message="OTP sent successfully"), 200


@otp_bp.post("/verify")
def verify_otp():
    data = request.get_json(silent=True) or {}
    identifier = _identifier(data)
    user = otp.verify_otp(identifier, data.get("otp"))

    token = issue_token(user, current_app.config.get("OTP_TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60))
    log_event("OTP_LOGIN_SUCCESS", user_id=user.id)
    return jsonify(success=True, message="Login successful", token=token, user=user.to_dict()), 200
