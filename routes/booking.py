from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import booking_engine
from utils.auth_context import login_required
from utils.audit import log_event
from utils.errors import ConflictError

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


# ---------- USERS: reserve a slot (capacity enforced by the database) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    try:
        booking = booking_engine.create_reservation(
            g.user,
            data.get("date"),
            data.get("time"),
            guests=data.get("guests"),
            cart=data.get("cart") if isinstance(data.get("cart"), list) else None,
        )
    except ConflictError as exc:
        log_event(
            "BOOKING_FAIL_SLOT_UNAVAILABLE",
            user_id=g.user.id,
            entity="slot",
            entity_id=f"{data.get('date')} {data.get('time')}",
            metadata={"reason": exc.message},
        )
        raise

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"date": booking.date, "time": booking.time, "guests": booking.guests})
    return jsonify(
        message="Booking created successfully. Awaiting payment confirmation.",
        booking=booking.to_dict(),
    ), 201


# ---------- USERS: my bookings ----------
@booking_bp.get("")
@login_required
def my_bookings():
    rows = booking_engine.list_user_bookings(g.user.id)
    return jsonify([b.to_dict() for b in rows]), 200


@booking_bp.get("/availability")
@login_required
def availability():
    date = request.args.get("date")
    slots = booking_engine.get_availability(date)
    return jsonify(date=date, slots=slots), 200


@booking_bp.put("/cancel/<int:booking_id>")
@login_required
def cancel_booking(booking_id: int):
    booking = booking_engine.cancel_reservation(g.user.id, booking_id)
    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(message="Booking cancelled successfully", booking=booking.to_dict()), 200


@booking_bp.put("/update/<int:booking_id>")
@login_required
def update_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = booking_engine.update_reservation(
        g.user.id,
        booking_id,
        date=data.get("date"),
        time=data.get("time"),
        guests=data.get("guests"),
    )
    log_event("BOOKING_UPDATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"date": booking.date, "time": booking.time, "guests": booking.guests})
    return jsonify(message="Booking updated successfully", booking=booking.to_dict()), 200


@booking_bp.delete("/<int:booking_id>")
@login_required
def delete_booking(booking_id: int):
    booking_engine.delete_reservation(g.user.id, booking_id)
    log_event("BOOKING_DELETE", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(message="Booking deleted successfully"), 200


# ---------- ADMIN: all bookings ----------
@booking_bp.get("/all")
@require_roles("admin")
def all_bookings():
    rows = booking_engine.list_all_bookings(status=request.args.get("status"))
    return jsonify([b.to_dict(include_user=True) for b in rows]), 200


@booking_bp.put("/complete/<int:booking_id>")
@require_roles("admin")
def complete_booking(booking_id: int):
    booking = booking_engine.complete_reservation(booking_id)
    log_event("BOOKING_COMPLETE", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(message="Booking marked as completed", booking=booking.to_dict()), 200
