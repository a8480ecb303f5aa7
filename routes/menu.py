from flask import Blueprint, request, jsonify, g

from models import db
from models.menu_item import MenuItem
from security.rbac import require_roles
from utils.audit import log_event
from utils.errors import NotFoundError, ValidationError

menu_bp = Blueprint("menu", __name__, url_prefix="/menu")


def _get_item(item_id: int) -> MenuItem:
    item = db.session.get(MenuItem, item_id)
    if not item:
        raise NotFoundError("Menu item not found")
    return item


def _price(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValidationError("price must be a positive number")
    return float(value)


@menu_bp.get("")
def list_menu():
    q = MenuItem.query
    if request.args.get("available") == "true":
        q = q.filter(MenuItem.available.is_(True))
    items = q.order_by(MenuItem.created_at.asc(), MenuItem.id.asc()).all()
    return jsonify([item.to_dict() for item in items]), 200


@menu_bp.get("/<int:item_id>")
def get_menu_item(item_id: int):
    return jsonify(_get_item(item_id).to_dict()), 200


@menu_bp.post("")
@require_roles("admin")
def add_menu_item():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    description = (data.get("description") or "").strip()
    if not name or not description or data.get("price") in (None, ""):
        raise ValidationError("All fields are required")

    item = MenuItem(
        name=name,
        description=description,
        price=_price(data.get("price")),
        image=(data.get("image") or "").strip() or None,
        available=bool(data.get("available", True)),
    )
    db.session.add(item)
    db.session.commit()

    log_event("MENU_ITEM_CREATE", user_id=g.user.id, entity="menu_item", entity_id=item.id)
    return jsonify(message="Menu item added", item=item.to_dict()), 201


@menu_bp.put("/<int:item_id>")
@require_roles("admin")
def update_menu_item(item_id: int):
    data = request.get_json(silent=True) or {}
    item = _get_item(item_id)

    # absent fields keep their current value
    if data.get("name") is not None:
        name = str(data["name"]).strip()
        if not name:
            raise ValidationError("name cannot be empty")
        item.name = name
    if data.get("description") is not None:
        item.description = str(data["description"]).strip()
    if data.get("price") is not None:
        item.price = _price(data["price"])
    if "image" in data:
        item.image = (data.get("image") or "").strip() or None
    if data.get("available") is not None:
        item.available = bool(data["available"])

    db.session.commit()

    log_event("MENU_ITEM_UPDATE", user_id=g.user.id, entity="menu_item", entity_id=item.id)
    return jsonify(message="Menu item updated", item=item.to_dict()), 200


@menu_bp.delete("/<int:item_id>")
@require_roles("admin")
def delete_menu_item(item_id: int):
    item = _get_item(item_id)
    db.session.delete(item)
    db.session.commit()

    log_event("MENU_ITEM_DELETE", user_id=g.user.id, entity="menu_item", entity_id=item_id)
    return jsonify(message="Menu item deleted"), 200
