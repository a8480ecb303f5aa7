from datetime import datetime
from models.db import db


class LoginOTP(db.Model):
    __tablename__ = "login_otps"

    id = db.Column(db.Integer, primary_key=True)

    # email or mobile the code was sent to
    identifier = db.Column(db.String(255), nullable=False, index=True)
    code_hash = db.Column(db.String(128), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    consumed_at = db.Column(db.DateTime, nullable=True)

    attempts = db.Column(db.Integer, default=0, nullable=False)
