import logging

from flask import current_app
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

logger = logging.getLogger(__name__)


def normalize_number(number: str) -> str:
    number = (number or "").strip()
    if number.startswith("+"):
        return number
    return f"{current_app.config.get('SMS_COUNTRY_CODE', '+91')}{number}"


def send_sms(to_number: str, body: str):
    """Send a text message through Twilio. Returns ``(ok, error)`` and never raises."""
    sid = current_app.config.get("TWILIO_ACCOUNT_SID")
    token = current_app.config.get("TWILIO_AUTH_TOKEN")
    from_number = current_app.config.get("TWILIO_FROM_NUMBER")

    if not sid or not token or not from_number:
        logger.warning("SMS not configured; dropping message to %s", to_number)
        return False, "SMS not configured"

    try:
        Client(sid, token).messages.create(
            from_=from_number,
            to=normalize_number(to_number),
            body=body,
        )
        return True, None
    except TwilioException as exc:
        logger.warning("SMS to %s failed: %s", to_number, exc)
        return False, str(exc)
