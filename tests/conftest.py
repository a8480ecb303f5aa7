import re

import pytest
import stripe

from app import create_app
from config import Config
from models import db as _db
from models.user import User
from security.password import hash_password
from security.tokens import issue_token

PASSWORD = "Sunny-Side-Up-42"


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    BCRYPT_ROUNDS = 4
    NOTIFY_ASYNC = False
    MAX_LOGIN_ATTEMPTS = 3
    LOCKOUT_MINUTES = 1

    CLIENT_URL = "http://frontend.test"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_dummy"

    SMTP_HOST = "smtp.test"
    SMTP_FROM_EMAIL = "noreply@breakfast.test"
    SMTP_USERNAME = None
    SMTP_PASSWORD = None

    TWILIO_ACCOUNT_SID = "AC_test"
    TWILIO_AUTH_TOKEN = "token"
    TWILIO_FROM_NUMBER = "+15550000000"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Every message handed to SMTP."""
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, username, password):
            pass

        def send_message(self, msg):
            sent.append(msg)

    monkeypatch.setattr("utils.emailer.smtplib.SMTP", FakeSMTP)
    return sent


@pytest.fixture(autouse=True)
def sms_outbox(monkeypatch):
    sent = []

    class FakeMessages:
        def create(self, from_, to, body):
            sent.append({"from": from_, "to": to, "body": body})

    class FakeClient:
        def __init__(self, sid, token):
            self.messages = FakeMessages()

    monkeypatch.setattr("utils.sms.Client", FakeClient)
    return sent


class FakeStripe:
    def __init__(self):
        self.sessions = {}
        self.created = []

    def create(self, **kwargs):
        sid = f"cs_test_{len(self.sessions) + 1}"
        line_items = kwargs["line_items"]
        session = {
            "id": sid,
            "url": f"https://checkout.stripe.test/{sid}",
            "payment_status": "unpaid",
            "amount_total": sum(li["price_data"]["unit_amount"] * li["quantity"] for li in line_items),
            "currency": line_items[0]["price_data"]["currency"],
            "customer_details": None,
            "metadata": dict(kwargs["metadata"]),
        }
        self.sessions[sid] = session
        self.created.append(kwargs)
        return session

    def retrieve(self, sid):
        if sid not in self.sessions:
            raise stripe.InvalidRequestError(f"No such checkout.session: '{sid}'", "id")
        return self.sessions[sid]

    def pay(self, sid, email=None):
        self.sessions[sid]["payment_status"] = "paid"
        self.sessions[sid]["customer_details"] = {"email": email}
        return self.sessions[sid]


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakeStripe()
    monkeypatch.setattr(stripe.checkout.Session, "create", fake.create)
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake.retrieve)
    return fake


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(name=None, role="user", email=None, mobile=None, password=PASSWORD):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"Guest {n}",
            email=email or f"guest{n}@example.com",
            mobile=mobile or f"98765{n:05d}",
            password_hash=hash_password(password),
            role=role,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user(name="Asha")


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", role="admin", email="admin@example.com")


def auth_headers(user, ttl_seconds=None):
    return {"Authorization": f"Bearer {issue_token(user, ttl_seconds)}"}


def message_text(msg) -> str:
    return msg.get_body(preferencelist=("plain",)).get_content()


def find_otp(msg) -> str:
    return re.search(r"\b(\d{6})\b", message_text(msg)).group(1)
