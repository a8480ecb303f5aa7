from .health import health_bp
from .auth import auth_bp
from .menu import menu_bp
from .booking import booking_bp
from .payments import payments_bp
from .stripe_webhook import webhook_bp
from .otp import otp_bp
from .audit_logs import audit_bp
