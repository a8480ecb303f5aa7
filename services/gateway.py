"""Thin wrapper over Stripe Checkout.

Everything past this module works with plain dicts, so the rest of the code
(and the tests) never touches ``stripe`` objects directly.
"""
import logging

import stripe
from flask import current_app

from utils.errors import UpstreamError

logger = logging.getLogger(__name__)


def _configure():
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe.api_key:
        raise UpstreamError("Stripe secret key missing (STRIPE_SECRET_KEY)")


def _as_dict(obj):
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def session_summary(session) -> dict:
    session = _as_dict(session)
    details = _as_dict(session.get("customer_details"))
    return {
        "id": session.get("id"),
        "url": session.get("url"),
        "payment_status": session.get("payment_status"),
        "amount_total": session.get("amount_total"),
        "currency": session.get("currency"),
        "customer_email": details.get("email") or session.get("customer_email"),
        "metadata": dict(_as_dict(session.get("metadata"))),
    }


def create_session(line_items, success_url, cancel_url, metadata) -> dict:
    _configure()
    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
    except stripe.StripeError as exc:
        logger.error("Stripe session create failed: %s", exc)
        raise UpstreamError("Failed to create checkout session", details=str(exc))
    return session_summary(session)


def retrieve_session(session_id: str) -> dict:
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError:
        return None
    except stripe.StripeError as exc:
        logger.error("Stripe session retrieve failed for %s: %s", session_id, exc)
        raise UpstreamError("Failed to retrieve checkout session", details=str(exc))
    return session_summary(session)


def construct_webhook_event(payload: bytes, sig_header: str) -> dict:
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise UpstreamError("Webhook secret not configured")
    event = stripe.Webhook.construct_event(payload, sig_header, secret)
    return _as_dict(event)
