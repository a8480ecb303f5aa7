from flask import Blueprint, jsonify
from sqlalchemy import text

from models import db

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    db.session.execute(text("SELECT 1"))
    return jsonify(status="ok"), 200


@health_bp.get("/")
def index():
    return "Breakfast Booking API Running", 200
