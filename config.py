import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _csv(value: str):
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as breakfast.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "breakfast.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Signed bearer tokens: 12 hours for password login, 7 days for OTP login
    TOKEN_TTL_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", str(12 * 60 * 60)))
    OTP_TOKEN_TTL_SECONDS = int(os.getenv("OTP_TOKEN_TTL_SECONDS", str(7 * 24 * 60 * 60)))

    # bcrypt cost factor
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
    LOCKOUT_MINUTES = int(os.getenv("LOCKOUT_MINUTES", "1"))

    # Booking slots
    SLOT_TIMES = _csv(os.getenv("SLOT_TIMES", "08:00,09:00,10:00,11:00"))
    SLOT_CAPACITY = int(os.getenv("SLOT_CAPACITY", "5"))

    # Checkout
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "inr")
    MIN_UNIT_PRICE = int(os.getenv("MIN_UNIT_PRICE", "50"))          # major units
    CART_SUMMARY_MAX_LEN = int(os.getenv("CART_SUMMARY_MAX_LEN", "490"))
    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Fast Breakfast")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # SMS (Twilio)
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")
    SMS_COUNTRY_CODE = os.getenv("SMS_COUNTRY_CODE", "+91")

    # OTP login
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "300"))  # 5 minutes
    OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))

    # Send emails/SMS on a background thread
    NOTIFY_ASYNC = os.getenv("NOTIFY_ASYNC", "true").lower() == "true"

    # Basic app settings
    DEBUG = False
