import logging

import stripe
from flask import Blueprint, request, jsonify

from services import gateway, payments
from utils.audit import log_event

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.data

    try:
        event = gateway.construct_webhook_event(payload, sig_header)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("Rejected Stripe webhook with invalid payload or signature")
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event.get("type")
    if event_type in ("checkout.session.completed", "checkout.session.expired"):
        session = gateway.session_summary(event["data"]["object"])

        if event_type == "checkout.session.completed":
            if session.get("payment_status") == "paid":
                payment, booking = payments.confirm_checkout(session)
                log_event("PAYMENT_PAID", entity="payment", entity_id=payment.id if payment else None,
                          metadata={"stripe_session_id": session.get("id"), "booking_id": booking.id if booking else None})
        else:
            payment = payments.fail_checkout(session)
            log_event("PAYMENT_EXPIRED", entity="payment", entity_id=payment.id if payment else None,
                      metadata={"stripe_session_id": session.get("id")})

    return jsonify(received=True), 200
