"""Cart pricing for Stripe Checkout.

Unit prices are floored at ``MIN_UNIT_PRICE`` and converted to minor units
(``price * 100`` rounded half up). The cart summary attached to the session
is a short ``name×quantity`` list; it is the only copy of the order the
gateway keeps, and unit prices cannot be recovered from it.
"""
import math

from flask import current_app

from models import db
from models.menu_item import MenuItem
from utils.errors import NotFoundError, ValidationError

SUMMARY_SEPARATOR = ", "
QUANTITY_MARK = "×"


def _min_unit_price():
    return current_app.config.get("MIN_UNIT_PRICE", 50)


def to_minor_units(price) -> int:
    return int(math.floor(price * 100 + 0.5))


def normalize_cart(cart):
    """Validate raw cart lines; lines naming a menu item take its catalog name and price."""
    if not isinstance(cart, list) or not cart:
        raise ValidationError("Invalid data", details="cart must be a non-empty list")

    items = []
    for raw in cart:
        if not isinstance(raw, dict):
            raise ValidationError("Invalid cart line")

        quantity = raw.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Cart quantity must be a whole number of at least 1")

        menu_item_id = raw.get("menu_item_id")
        if menu_item_id is not None:
            menu_item = db.session.get(MenuItem, menu_item_id)
            if not menu_item:
                raise NotFoundError("Menu item not found", menu_item_id=menu_item_id)
            if not menu_item.available:
                raise ValidationError("Menu item not available", menu_item_id=menu_item_id)
            items.append({
                "menu_item_id": menu_item.id,
                "name": menu_item.name,
                "price": menu_item.price,
                "quantity": quantity,
            })
            continue

        name = (raw.get("name") or "").strip() if isinstance(raw.get("name"), str) else ""
        price = raw.get("price")
        if not name:
            raise ValidationError("Cart line name required")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise ValidationError("Cart line price must be a non-negative number")
        items.append({"name": name, "price": price, "quantity": quantity})

    return items


def build_line_items(items, currency=None):
    """Returns ``(line_items, total_minor_units)`` for Checkout."""
    currency = currency or current_app.config.get("PAYMENT_CURRENCY", "inr")
    floor = _min_unit_price()

    total = 0
    line_items = []
    for item in items:
        unit_amount = to_minor_units(max(item["price"], floor))
        total += unit_amount * item["quantity"]
        line_items.append({
            "price_data": {
                "currency": currency,
                "product_data": {"name": item["name"]},
                "unit_amount": unit_amount,
            },
            "quantity": item["quantity"],
        })
    return line_items, total


def _utf16_prefix(text: str, limit: int) -> str:
    """First ``limit`` UTF-16 code units of ``text``, never splitting a surrogate pair."""
    encoded = text.encode("utf-16-le")
    if len(encoded) <= limit * 2:
        return text
    return encoded[:limit * 2].decode("utf-16-le", errors="ignore")


def cart_summary(items, limit=None) -> str:
    """``name×qty`` lines joined by ", ", capped at ``limit`` UTF-16 code units."""
    if limit is None:
        limit = current_app.config.get("CART_SUMMARY_MAX_LEN", 490)
    summary = SUMMARY_SEPARATOR.join(f"{item['name']}{QUANTITY_MARK}{item['quantity']}" for item in items)
    return _utf16_prefix(summary, limit)


def _parse_quantity(raw):
    try:
        quantity = int(raw)
    except (TypeError, ValueError):
        return 1
    return quantity or 1


def parse_cart_summary(summary):
    """Rebuild ``[{name, quantity, price: 0}]`` from a cart summary."""
    if not summary:
        return []
    items = []
    for entry in summary.split(SUMMARY_SEPARATOR):
        parts = entry.split(QUANTITY_MARK)
        quantity = parts[1] if len(parts) > 1 else None
        items.append({"name": parts[0], "quantity": _parse_quantity(quantity), "price": 0})
    return items
