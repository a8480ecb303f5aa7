from flask import Blueprint, request, jsonify, g, Response

from services import payments
from utils.auth_context import login_required
from utils.audit import log_event

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


@payments_bp.post("/create-checkout-session")
@login_required
def create_checkout_session():
    data = request.get_json(silent=True) or {}
    result = payments.create_checkout_session(g.user, data.get("booking_id"), data.get("cart"))

    log_event("PAYMENT_SESSION_CREATED", user_id=g.user.id, entity="payment", entity_id=result["payment_id"],
              metadata={"stripe_session_id": result["session_id"], "booking_id": data.get("booking_id")})
    return jsonify(url=result["url"], session_id=result["session_id"]), 200


@payments_bp.get("/verify/<session_id>")
def verify_payment(session_id: str):
    result = payments.verify_payment(session_id)
    booking = result.get("booking") or {}
    log_event("PAYMENT_VERIFIED", user_id=booking.get("user_id"), entity="payment", entity_id=session_id,
              metadata={"booking_id": booking.get("id")})
    return jsonify(result), 200


@payments_bp.get("/receipt/<session_id>")
def get_receipt(session_id: str):
    pdf_bytes = payments.get_receipt(session_id)
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="receipt-{session_id}.pdf"'},
    )
