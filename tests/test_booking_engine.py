import pytest

from models import db
from models.booking import Booking
from services import booking_engine
from services.booking_engine import (
    cancel_reservation,
    complete_reservation,
    create_reservation,
    delete_reservation,
    get_availability,
    mark_booking_paid,
    update_reservation,
)
from utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

DAY = "2025-06-01"


def remaining(date, time):
    return {s["time"]: s["remaining"] for s in get_availability(date)}[time]


def book_paid(user, date=DAY, time="08:00", guests=1):
    booking = create_reservation(user, date, time, guests)
    mark_booking_paid(booking)
    db.session.commit()
    return booking


def test_create_starts_pending_payment_with_default_guests(user):
    booking = create_reservation(user, DAY, "08:00")

    assert booking.status == "pending-payment"
    assert booking.guests == 1
    assert booking.user_id == user.id
    assert booking.seat == 1


def test_admin_cannot_book(admin):
    with pytest.raises(ForbiddenError):
        create_reservation(admin, DAY, "08:00")
    assert Booking.query.count() == 0


@pytest.mark.parametrize("date,time", [
    (None, "08:00"),
    (DAY, None),
    (DAY, "12:00"),
    ("01-06-2025", "08:00"),
    ("2025-6-1", "08:00"),
    ("2025-06-01\n", "08:00"),
])
def test_rejects_malformed_date_or_time(user, date, time):
    with pytest.raises(ValidationError):
        create_reservation(user, date, time)


@pytest.mark.parametrize("guests", [0, -2, "three", "2.5", 1.5, True])
def test_rejects_bad_guest_count(user, guests):
    with pytest.raises(ValidationError):
        create_reservation(user, DAY, "08:00", guests)


def test_numeric_string_guest_count_is_accepted(user):
    booking = create_reservation(user, DAY, "08:00", " 2 ")
    assert booking.guests == 2


def test_admin_check_runs_before_validation(admin):
    with pytest.raises(ForbiddenError):
        create_reservation(admin, "not-a-date", "99:99")


def test_duplicate_active_booking_is_rejected(user):
    create_reservation(user, DAY, "08:00")
    with pytest.raises(ConflictError) as exc:
        create_reservation(user, DAY, "08:00")
    assert "already have a booking" in exc.value.message
    assert exc.value.status_code == 400


def test_duplicate_rejected_while_booked(user):
    book_paid(user)
    with pytest.raises(ConflictError):
        create_reservation(user, DAY, "08:00")


def test_same_user_may_book_other_slots(user):
    create_reservation(user, DAY, "08:00")
    create_reservation(user, DAY, "09:00")
    create_reservation(user, "2025-06-02", "08:00")
    assert Booking.query.filter_by(user_id=user.id).count() == 3


def test_sixth_booking_for_full_slot_is_rejected(make_user):
    users = [make_user() for _ in range(6)]
    for u in users[:5]:
        create_reservation(u, DAY, "09:00")

    with pytest.raises(ConflictError) as exc:
        create_reservation(users[5], DAY, "09:00")
    assert exc.value.message == "Slot fully booked"
    assert remaining(DAY, "09:00") == 0


def test_availability_counts_active_bookings_only(make_user):
    a, b, c = make_user(), make_user(), make_user()
    create_reservation(a, DAY, "08:00")
    book_paid(b, time="08:00")
    cancelled = create_reservation(c, DAY, "08:00")
    cancel_reservation(c.id, cancelled.id)

    slots = get_availability(DAY)
    assert [s["time"] for s in slots] == ["08:00", "09:00", "10:00", "11:00"]
    assert remaining(DAY, "08:00") == 3
    assert remaining(DAY, "09:00") == 5
    assert remaining("2025-06-02", "08:00") == 5


def test_availability_requires_valid_date(app):
    with pytest.raises(ValidationError):
        get_availability(None)
    with pytest.raises(ValidationError):
        get_availability("June 1st")


def test_cancel_frees_the_slot(make_user):
    users = [make_user() for _ in range(6)]
    bookings = [create_reservation(u, DAY, "10:00") for u in users[:5]]
    assert remaining(DAY, "10:00") == 0

    cancelled = cancel_reservation(users[0].id, bookings[0].id)
    assert cancelled.status == "cancelled"
    assert cancelled.seat is None
    assert remaining(DAY, "10:00") == 1

    # the freed seat can be taken again, and the canceller may rebook later
    create_reservation(users[5], DAY, "10:00")
    assert remaining(DAY, "10:00") == 0


def test_cancel_then_rebook_same_slot(user):
    first = create_reservation(user, DAY, "08:00")
    cancel_reservation(user.id, first.id)
    second = create_reservation(user, DAY, "08:00")
    assert second.id != first.id
    assert second.status == "pending-payment"


def test_cancel_applies_to_any_prior_status(user):
    booking = book_paid(user)
    complete_reservation(booking.id)
    assert cancel_reservation(user.id, booking.id).status == "cancelled"


def test_cancel_requires_owner(make_user):
    owner, other = make_user(), make_user()
    booking = create_reservation(owner, DAY, "08:00")
    with pytest.raises(NotFoundError):
        cancel_reservation(other.id, booking.id)
    with pytest.raises(NotFoundError):
        cancel_reservation(owner.id, 9999)


def test_complete_is_unconditional_and_frees_slot(user):
    booking = create_reservation(user, DAY, "11:00")
    completed = complete_reservation(booking.id)
    assert completed.status == "completed"
    assert completed.completed_at is not None
    assert remaining(DAY, "11:00") == 5

    with pytest.raises(NotFoundError):
        complete_reservation(424242)


def test_mark_booking_paid_only_from_pending(user):
    booking = create_reservation(user, DAY, "08:00")
    assert mark_booking_paid(booking) is True
    assert booking.status == "booked"
    assert mark_booking_paid(booking) is False

    cancel_reservation(user.id, booking.id)
    assert mark_booking_paid(booking) is False
    assert booking.status == "cancelled"


def test_update_requires_booked_status(user):
    booking = create_reservation(user, DAY, "08:00")
    with pytest.raises(ValidationError) as exc:
        update_reservation(user.id, booking.id, guests=3)
    assert "Only confirmed bookings" in exc.value.message


def test_update_guests_in_place(user):
    booking = book_paid(user)
    updated = update_reservation(user.id, booking.id, guests=4)
    assert updated.guests == 4
    assert (updated.date, updated.time) == (DAY, "08:00")


def test_update_validates_new_time_and_date(user):
    booking = book_paid(user)
    with pytest.raises(ValidationError):
        update_reservation(user.id, booking.id, time="07:30")
    with pytest.raises(ValidationError):
        update_reservation(user.id, booking.id, date="tomorrow")


def test_update_moves_seat_to_new_slot(user):
    booking = book_paid(user)
    moved = update_reservation(user.id, booking.id, time="09:00")

    assert moved.time == "09:00"
    assert moved.status == "booked"
    assert remaining(DAY, "08:00") == 5
    assert remaining(DAY, "09:00") == 4


def test_update_with_empty_date_keeps_current_date(user):
    booking = book_paid(user)
    moved = update_reservation(user.id, booking.id, date="", time="09:00", guests="3")

    assert (moved.date, moved.time, moved.guests) == (DAY, "09:00", 3)


def test_update_into_full_slot_is_rejected(make_user):
    others = [make_user() for _ in range(5)]
    for u in others:
        create_reservation(u, DAY, "09:00")
    mover = make_user()
    booking = book_paid(mover, time="08:00")

    with pytest.raises(ConflictError):
        update_reservation(mover.id, booking.id, time="09:00")

    db.session.expire_all()
    unchanged = db.session.get(Booking, booking.id)
    assert unchanged.time == "08:00"
    assert remaining(DAY, "09:00") == 0


def test_update_into_slot_already_held_by_user_is_rejected(user):
    book_paid(user, time="10:00")
    booking = book_paid(user, time="08:00")
    with pytest.raises(ConflictError):
        update_reservation(user.id, booking.id, time="10:00")


def test_update_requires_owner(make_user):
    owner, other = make_user(), make_user()
    booking = book_paid(owner)
    with pytest.raises(NotFoundError):
        update_reservation(other.id, booking.id, guests=2)


def test_delete_is_owner_only_hard_delete(make_user):
    owner, other = make_user(), make_user()
    booking = create_reservation(owner, DAY, "08:00")

    with pytest.raises(NotFoundError):
        delete_reservation(other.id, booking.id)

    delete_reservation(owner.id, booking.id)
    assert db.session.get(Booking, booking.id) is None
    assert remaining(DAY, "08:00") == 5


def test_booking_created_email_is_sent(user, outbox):
    create_reservation(user, DAY, "08:00", guests=2)

    assert len(outbox) == 1
    msg = outbox[0]
    assert msg["To"] == user.email
    assert "Awaiting Payment" in msg["Subject"]


def test_email_failure_does_not_undo_booking(user, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("smtp exploded")

    monkeypatch.setattr(booking_engine, "send_email", broken)
    booking = create_reservation(user, DAY, "08:00")

    assert db.session.get(Booking, booking.id).status == "pending-payment"


# ---------- racing requests ----------
# Each racer reads the slot before any of the others has committed, so every
# application-level check passes. Only the database constraints stand in the way.

@pytest.fixture
def stale_reads(monkeypatch):
    monkeypatch.setattr(booking_engine, "_active_booking_for", lambda *a: None)
    monkeypatch.setattr(booking_engine, "_active_count", lambda *a: 0)
    monkeypatch.setattr(booking_engine, "_taken_seats", lambda *a: set())


def test_capacity_holds_when_all_checks_see_an_empty_slot(make_user, stale_reads):
    users = [make_user() for _ in range(8)]
    results = []
    for u in users:
        try:
            create_reservation(u, DAY, "09:00")
            results.append("ok")
        except ConflictError:
            results.append("full")

    assert results == ["ok"] * 5 + ["full"] * 3
    active = Booking.query.filter(Booking.date == DAY, Booking.time == "09:00",
                                  Booking.status.in_(("pending-payment", "booked"))).count()
    assert active == 5
    assert sorted(b.seat for b in Booking.query.all()) == [1, 2, 3, 4, 5]


def test_duplicate_holds_when_checks_see_nothing(user, stale_reads):
    create_reservation(user, DAY, "09:00")
    with pytest.raises(ConflictError):
        create_reservation(user, DAY, "09:00")
    assert Booking.query.filter_by(user_id=user.id).count() == 1
