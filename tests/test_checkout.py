import pytest

from models import db
from models.menu_item import MenuItem
from services.checkout import (
    build_line_items,
    cart_summary,
    normalize_cart,
    parse_cart_summary,
    to_minor_units,
)
from utils.errors import NotFoundError, ValidationError


def test_unit_price_is_floored_at_fifty(app):
    items = [
        {"name": "Toast", "price": 20, "quantity": 2},
        {"name": "Dosa", "price": 120, "quantity": 1},
    ]
    line_items, total = build_line_items(items)

    assert [li["price_data"]["unit_amount"] for li in line_items] == [5000, 12000]
    assert [li["quantity"] for li in line_items] == [2, 1]
    assert line_items[0]["price_data"]["currency"] == "inr"
    assert line_items[0]["price_data"]["product_data"] == {"name": "Toast"}
    assert total == 5000 * 2 + 12000


@pytest.mark.parametrize("price,expected", [
    (50, 5000),
    (99.99, 9999),
    (75.5, 7550),
    (60.125, 6013),
])
def test_minor_units_round_half_up(price, expected):
    assert to_minor_units(price) == expected


def test_cart_summary_is_capped(app):
    items = [{"name": f"Pancake stack {i}", "price": 80, "quantity": i + 1} for i in range(60)]
    summary = cart_summary(items)

    assert len(summary) == 490
    assert summary.startswith("Pancake stack 0×1, Pancake stack 1×2")


def test_cart_summary_drops_prices(app):
    summary = cart_summary([
        {"name": "Idli", "price": 60, "quantity": 3},
        {"name": "Coffee", "price": 45, "quantity": 1},
    ])
    assert summary == "Idli×3, Coffee×1"
    assert parse_cart_summary(summary) == [
        {"name": "Idli", "quantity": 3, "price": 0},
        {"name": "Coffee", "quantity": 1, "price": 0},
    ]


def test_parse_cart_summary_tolerates_truncation():
    assert parse_cart_summary("Idli×3, Cof") == [
        {"name": "Idli", "quantity": 3, "price": 0},
        {"name": "Cof", "quantity": 1, "price": 0},
    ]
    assert parse_cart_summary("Tea×0, Jam×x") == [
        {"name": "Tea", "quantity": 1, "price": 0},
        {"name": "Jam", "quantity": 1, "price": 0},
    ]
    assert parse_cart_summary("") == []
    assert parse_cart_summary(None) == []


def test_normalize_cart_uses_catalog_for_menu_items(app):
    item = MenuItem(name="Masala Dosa", description="Crispy", price=140.0)
    db.session.add(item)
    db.session.commit()

    items = normalize_cart([{"menu_item_id": item.id, "name": "cheap", "price": 1, "quantity": 2}])
    assert items == [{"menu_item_id": item.id, "name": "Masala Dosa", "price": 140.0, "quantity": 2}]


def test_normalize_cart_rejects_unknown_or_unavailable_items(app):
    gone = MenuItem(name="Waffle", description="Sold out", price=90.0, available=False)
    db.session.add(gone)
    db.session.commit()

    with pytest.raises(NotFoundError):
        normalize_cart([{"menu_item_id": 999, "quantity": 1}])
    with pytest.raises(ValidationError):
        normalize_cart([{"menu_item_id": gone.id, "quantity": 1}])


@pytest.mark.parametrize("cart", [
    None,
    [],
    "toast",
    [{"name": "", "price": 10, "quantity": 1}],
    [{"name": "Toast", "price": "ten", "quantity": 1}],
    [{"name": "Toast", "price": 10, "quantity": 0}],
])
def test_normalize_cart_rejects_bad_lines(app, cart):
    with pytest.raises(ValidationError):
        normalize_cart(cart)


def test_cart_summary_cap_counts_utf16_units(app):
    # each pancake emoji is two UTF-16 code units
    items = [{"name": "\U0001F95E" * 300, "price": 80, "quantity": 1}]
    summary = cart_summary(items)

    assert summary == "\U0001F95E" * 245
    assert len(summary.encode("utf-16-le")) // 2 == 490


def test_cart_summary_never_splits_a_surrogate_pair(app):
    summary = cart_summary([{"name": "Toast\U0001F35E", "price": 60, "quantity": 1}], limit=6)
    assert summary == "Toast"
