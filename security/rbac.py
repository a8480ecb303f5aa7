from functools import wraps
from flask import g
from utils.auth_context import login_required
from utils.errors import ForbiddenError

def require_roles(*role_names: str):
    """
    Usage: @require_roles("admin")
    """
    def decorator(fn):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if g.user.role not in role_names:
                raise ForbiddenError("Forbidden: Access denied.")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
