import logging
from datetime import datetime

from flask import current_app, url_for

from models import db
from models.booking import STATUS_BOOKED, STATUS_PENDING_PAYMENT, Booking
from models.payment import PAYMENT_FAILED, PAYMENT_PAID, PAYMENT_PENDING, Payment
from services import gateway
from services.booking_engine import mark_booking_paid
from services.checkout import build_line_items, cart_summary, normalize_cart
from services.receipts import receipt_from_session, render_receipt_pdf, send_receipt
from utils.errors import NotFoundError, UpstreamError, ValidationError
from utils.notify import dispatch

logger = logging.getLogger(__name__)


def _client_url() -> str:
    return (current_app.config.get("CLIENT_URL") or "").rstrip("/")


def create_checkout_session(user, booking_id, cart) -> dict:
    if not booking_id:
        raise ValidationError("booking_id required")
    items = normalize_cart(cart)

    booking = Booking.query.filter_by(id=booking_id, user_id=user.id).first()
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.status != STATUS_PENDING_PAYMENT:
        raise ValidationError("Booking is not awaiting payment", status=booking.status)

    currency = current_app.config.get("PAYMENT_CURRENCY", "inr")
    line_items, total = build_line_items(items, currency)
    summary = cart_summary(items)

    # A new session supersedes any earlier unpaid one for the booking
    for old in Payment.query.filter_by(booking_id=booking.id, status=PAYMENT_PENDING).all():
        old.status = PAYMENT_FAILED

    booking.cart = items
    payment = Payment(
        booking_id=booking.id,
        user_id=user.id,
        amount=total,
        currency=currency,
        status=PAYMENT_PENDING,
    )
    db.session.add(payment)
    db.session.commit()

    client_url = _client_url()
    try:
        session = gateway.create_session(
            line_items,
            success_url=f"{client_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{client_url}/payment-cancelled",
            metadata={
                "user_id": str(user.id),
                "booking_id": str(booking.id),
                "payment_id": str(payment.id),
                "cartSummary": summary,
            },
        )
    except UpstreamError:
        payment.status = PAYMENT_FAILED
        db.session.commit()
        raise

    payment.stripe_session_id = session["id"]
    db.session.commit()

    return {"url": session["url"], "session_id": session["id"], "payment_id": payment.id}


def _find_payment(session: dict):
    payment = None
    if session.get("id"):
        payment = Payment.query.filter_by(stripe_session_id=session["id"]).first()
    payment_id = (session.get("metadata") or {}).get("payment_id")
    if not payment and payment_id and str(payment_id).isdigit():
        payment = db.session.get(Payment, int(payment_id))
    return payment


def _find_booking(session: dict, payment):
    if payment is not None and payment.booking_id:
        return db.session.get(Booking, payment.booking_id)
    booking_id = (session.get("metadata") or {}).get("booking_id")
    if booking_id and str(booking_id).isdigit():
        return db.session.get(Booking, int(booking_id))
    return None


def confirm_checkout(session: dict):
    """Record a paid session: Payment -> paid, Booking pending-payment -> booked.

    Safe to call repeatedly (webhook and verify both land here). The receipt is
    sent only by the call that first records the payment.
    Returns ``(payment, booking)``; either may be None.
    """
    payment = _find_payment(session)
    booking = _find_booking(session, payment)

    newly_paid = False
    if payment is not None and payment.status != PAYMENT_PAID:
        payment.status = PAYMENT_PAID
        payment.paid_at = datetime.utcnow()
        if not payment.stripe_session_id:
            payment.stripe_session_id = session.get("id")
        newly_paid = True

    booked_now = booking is not None and mark_booking_paid(booking)
    if payment is None and booked_now:
        newly_paid = True

    if booking is not None and not booked_now and booking.status != STATUS_BOOKED:
        logger.warning("Payment %s confirmed for booking %s in status %s", session.get("id"), booking.id, booking.status)

    if not newly_paid and not booked_now:
        return payment, booking

    db.session.commit()
    logger.info("Checkout %s confirmed (booking %s)", session.get("id"), booking.id if booking else None)

    if newly_paid:
        recipient = booking.user.email if booking is not None and booking.user else None
        recipient = recipient or session.get("customer_email")
        if recipient:
            dispatch(send_receipt, recipient, receipt_from_session(session))
        else:
            logger.warning("No email for receipt of session %s", session.get("id"))

    return payment, booking


def fail_checkout(session: dict):
    payment = _find_payment(session)
    if payment is None or payment.status != PAYMENT_PENDING:
        return payment
    payment.status = PAYMENT_FAILED
    db.session.commit()
    return payment


def _retrieve(session_id):
    if not session_id:
        raise ValidationError("Invalid session")
    return gateway.retrieve_session(session_id)


def verify_payment(session_id: str) -> dict:
    session = _retrieve(session_id)
    if not session or session.get("payment_status") != "paid":
        raise ValidationError("Payment not completed")

    payment, booking = confirm_checkout(session)
    receipt = receipt_from_session(session)

    return {
        "items": receipt["items"],
        "payment": {
            "id": session["id"],
            "amount": receipt["amount"],
            "currency": receipt["currency"],
            "status": receipt["status"],
            "receipt_url": url_for("payments.get_receipt", session_id=session["id"], _external=True),
        },
        "booking": booking.to_dict() if booking is not None else None,
    }


def get_receipt(session_id: str) -> bytes:
    session = _retrieve(session_id)
    if not session or session.get("payment_status") != "paid":
        raise NotFoundError("Receipt not found")
    return render_receipt_pdf(receipt_from_session(session))
