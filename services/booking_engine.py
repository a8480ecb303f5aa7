"""Slot reservations.

A day has a fixed set of slot times and every slot holds ``SLOT_CAPACITY``
active (pending-payment or booked) bookings. The limit is enforced by the
database: an active booking holds one numbered seat of its slot and the
``bookings`` table is unique on (date, time, seat) and (date, time, holder_id).
The read-side checks below only pick a likely free seat and produce the
friendly error; two requests racing for the last seat are settled by the
unique constraints, never by the application.
"""
import logging
import re
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import (
    ACTIVE_STATUSES,
    STATUS_BOOKED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING_PAYMENT,
    Booking,
)
from models.payment import Payment
from utils.emailer import send_email
from utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from utils.notify import dispatch

logger = logging.getLogger(__name__)

DEFAULT_SLOT_TIMES = ("08:00", "09:00", "10:00", "11:00")
DEFAULT_CAPACITY = 5

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

MSG_DUPLICATE = "You already have a booking for this slot."
MSG_FULL = "Slot fully booked"


def slot_times():
    return tuple(current_app.config.get("SLOT_TIMES") or DEFAULT_SLOT_TIMES)


def slot_capacity() -> int:
    return int(current_app.config.get("SLOT_CAPACITY") or DEFAULT_CAPACITY)


def _validate_date(date):
    if not isinstance(date, str) or not _DATE_RE.fullmatch(date):
        raise ValidationError("Invalid date format (use YYYY-MM-DD)")


def _validate_time(time):
    if time not in slot_times():
        raise ValidationError("Invalid time slot", allowed=list(slot_times()))


def _validate_guests(guests, default=1) -> int:
    if guests is None or guests == "":
        return default
    if isinstance(guests, str) and guests.strip().isdecimal():
        guests = int(guests.strip())
    if isinstance(guests, bool) or not isinstance(guests, int) or guests < 1:
        raise ValidationError("guests must be a whole number of at least 1")
    return guests


def _active_booking_for(user_id, date, time):
    return (
        Booking.query
        .filter(
            Booking.user_id == user_id,
            Booking.date == date,
            Booking.time == time,
            Booking.status.in_(ACTIVE_STATUSES),
        )
        .first()
    )


def _active_count(date, time) -> int:
    return (
        Booking.query
        .filter(Booking.date == date, Booking.time == time, Booking.status.in_(ACTIVE_STATUSES))
        .count()
    )


def _taken_seats(date, time) -> set:
    rows = (
        db.session.query(Booking.seat)
        .filter(Booking.date == date, Booking.time == time, Booking.seat.isnot(None))
        .all()
    )
    return {seat for (seat,) in rows}


def _check_slot_open(user_id, date, time):
    if _active_booking_for(user_id, date, time) is not None:
        raise ConflictError(MSG_DUPLICATE, status_code=400)
    if _active_count(date, time) >= slot_capacity():
        raise ConflictError(MSG_FULL)


def _claim_seat(user_id, date, time, place):
    """Commit the row staged by ``place(seat)`` on the first seat the database accepts."""
    taken = _taken_seats(date, time)
    for seat in range(1, slot_capacity() + 1):
        if seat in taken:
            continue
        row = place(seat)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if _active_booking_for(user_id, date, time) is not None:
                raise ConflictError(MSG_DUPLICATE, status_code=400)
            logger.info("Seat %s of %s %s taken concurrently, trying next", seat, date, time)
            continue
        return row
    raise ConflictError(MSG_FULL)


def _booking_created_message(name, booking_fields):
    date, time, guests = booking_fields
    subject = "Booking Created - Awaiting Payment"
    text = (
        f"Hi {name or 'Guest'},\n\n"
        "We've received your booking request. Please complete payment to confirm.\n\n"
        f"Date: {date}\nTime: {time}\nGuests: {guests}\nStatus: Pending Payment\n\n"
        "Once payment is successful, you'll receive a confirmation email.\n\n"
        "Thank you for choosing Fast Breakfast"
    )
    html = (
        '<div style="font-family:Arial, sans-serif; padding:20px; color:#333;">'
        f"<h2>Hi {name or 'Guest'},</h2>"
        "<p>We've received your booking request. Please complete payment to confirm.</p>"
        '<table style="border-collapse:collapse; margin-top:10px;">'
        f"<tr><td><b>Date:</b></td><td>{date}</td></tr>"
        f"<tr><td><b>Time:</b></td><td>{time}</td></tr>"
        f"<tr><td><b>Guests:</b></td><td>{guests}</td></tr>"
        '<tr><td><b>Status:</b></td><td><span style="color:orange;">Pending Payment</span></td></tr>'
        "</table>"
        '<p style="margin-top:20px;">Once payment is successful, you\'ll receive a confirmation email.</p>'
        "<p>Thank you for choosing <b>Fast Breakfast</b></p>"
        "</div>"
    )
    return subject, text, html


def create_reservation(user, date, time, guests=None, cart=None) -> Booking:
    if user.is_admin:
        raise ForbiddenError("Admins cannot create bookings.")
    if not date or not time:
        raise ValidationError("Date and time are required")
    _validate_time(time)
    _validate_date(date)
    guests = _validate_guests(guests)

    user_id = user.id
    email, name = user.email, user.name

    _check_slot_open(user_id, date, time)

    def place(seat):
        booking = Booking(
            user_id=user_id,
            date=date,
            time=time,
            guests=guests,
            status=STATUS_PENDING_PAYMENT,
            seat=seat,
            holder_id=user_id,
        )
        booking.cart = cart
        db.session.add(booking)
        return booking

    booking = _claim_seat(user_id, date, time, place)

    if email:
        subject, text, html = _booking_created_message(name, (date, time, guests))
        dispatch(send_email, email, subject, text, html=html)

    return booking


def get_availability(date):
    if not date:
        raise ValidationError("Date query parameter required")
    _validate_date(date)

    capacity = slot_capacity()
    return [
        {"time": t, "remaining": max(0, capacity - _active_count(date, t))}
        for t in slot_times()
    ]


def _owned_booking(user_id, booking_id, message="Booking not found") -> Booking:
    booking = Booking.query.filter_by(id=booking_id, user_id=user_id).first()
    if not booking:
        raise NotFoundError(message)
    return booking


def cancel_reservation(user_id, booking_id) -> Booking:
    booking = _owned_booking(user_id, booking_id)
    booking.status = STATUS_CANCELLED
    booking.cancelled_at = datetime.utcnow()
    booking.release_seat()
    db.session.commit()
    return booking


def complete_reservation(booking_id) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    booking.status = STATUS_COMPLETED
    booking.completed_at = datetime.utcnow()
    booking.release_seat()
    db.session.commit()
    return booking


def update_reservation(user_id, booking_id, date=None, time=None, guests=None) -> Booking:
    booking = _owned_booking(user_id, booking_id, "Booking not found or unauthorized")
    # empty values keep the current date or time
    date = date or None
    time = time or None
    if booking.status != STATUS_BOOKED:
        raise ValidationError("Only confirmed bookings can be updated.")
    if time is not None:
        _validate_time(time)
    if date is not None:
        _validate_date(date)
    new_guests = _validate_guests(guests, default=booking.guests)

    new_date = date or booking.date
    new_time = time or booking.time

    if (new_date, new_time) == (booking.date, booking.time):
        booking.guests = new_guests
        db.session.commit()
        return booking

    # Moving to another slot takes a seat there under the same constraints as a new booking.
    _check_slot_open(user_id, new_date, new_time)

    def place(seat):
        row = db.session.get(Booking, booking_id)
        row.date = new_date
        row.time = new_time
        row.guests = new_guests
        row.seat = seat
        row.holder_id = user_id
        return row

    return _claim_seat(user_id, new_date, new_time, place)


def delete_reservation(user_id, booking_id):
    booking = _owned_booking(user_id, booking_id, "Booking not found or unauthorized")
    Payment.query.filter_by(booking_id=booking.id).update({"booking_id": None}, synchronize_session=False)
    db.session.delete(booking)
    db.session.commit()


def mark_booking_paid(booking) -> bool:
    """pending-payment -> booked. Caller commits. Returns whether the status changed."""
    if booking.status != STATUS_PENDING_PAYMENT:
        return False
    booking.status = STATUS_BOOKED
    return True


def list_user_bookings(user_id):
    return (
        Booking.query
        .filter_by(user_id=user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )


def list_all_bookings(status=None):
    q = Booking.query
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
