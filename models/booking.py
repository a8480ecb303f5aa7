import json
from datetime import datetime
from models.db import db

STATUS_PENDING_PAYMENT = "pending-payment"
STATUS_BOOKED = "booked"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"

ACTIVE_STATUSES = (STATUS_PENDING_PAYMENT, STATUS_BOOKED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    time = db.Column(db.String(5), nullable=False)   # one of the fixed slot times
    guests = db.Column(db.Integer, nullable=False, default=1)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING_PAYMENT)
    # status values: pending-payment, booked, cancelled, completed

    # Seat claim while the booking is active; both are cleared when it stops being active.
    seat = db.Column(db.Integer, nullable=True)
    holder_id = db.Column(db.Integer, nullable=True)

    cart_json = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("bookings", passive_deletes=True))

    __table_args__ = (
        # Capacity: each seat of a slot can be held by one active booking
        db.UniqueConstraint("date", "time", "seat", name="uq_booking_slot_seat"),
        # One active booking per user per slot
        db.UniqueConstraint("date", "time", "holder_id", name="uq_booking_slot_holder"),
        db.Index("ix_bookings_date_time", "date", "time"),
    )

    @property
    def cart(self):
        if not self.cart_json:
            return []
        return json.loads(self.cart_json)

    @cart.setter
    def cart(self, items):
        self.cart_json = json.dumps(items) if items else None

    def release_seat(self):
        self.seat = None
        self.holder_id = None

    def to_dict(self, include_user=False):
        out = {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date,
            "time": self.time,
            "guests": self.guests,
            "status": self.status,
            "cart": self.cart,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
        if include_user and self.user is not None:
            out["user"] = {"id": self.user.id, "name": self.user.name, "email": self.user.email}
        return out
