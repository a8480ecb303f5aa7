from .db import db
from .user import User
from .audit_log import AuditLog
from .login_attempt import LoginAttempt
from .login_otp import LoginOTP
from .menu_item import MenuItem
from .booking import Booking
from .payment import Payment
