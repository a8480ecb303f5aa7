import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from models import db
from models.user import User, ROLE_ADMIN
from routes import health_bp, auth_bp, menu_bp, booking_bp, payments_bp, webhook_bp, otp_bp, audit_bp
from utils.auth_context import load_current_user
from utils.errors import AppError

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(menu_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(otp_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_user():
        load_current_user()

    register_error_handlers(app)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        return resp

    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def _app_error(exc):
        if exc.status_code >= 500:
            logger.error("%s: %s %s", type(exc).__name__, exc.message, exc.details or "")
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def _db_error(exc):
        db.session.rollback()
        logger.exception("Database error")
        return jsonify(error="Database error", details=str(exc)), 500


#-------------------------
def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("identifier")
    def make_admin(identifier):
        """Promote a user to admin by email or mobile (bootstrap)."""
        identifier = identifier.strip()
        user = User.query.filter(
            (User.email == identifier.lower()) | (User.mobile == identifier)
        ).first()
        if not user:
            click.echo("User not found")
            return

        if user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN
            db.session.commit()

        click.echo(f"{user.email} promoted to admin")

    @app.cli.command("init-db")
    def init_db():
        """Create all tables without running migrations (local development)."""
        db.create_all()
        click.echo("Database tables created")

#-------------------------


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
