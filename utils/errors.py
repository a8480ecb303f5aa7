"""Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``app.create_app`` turns them into JSON responses of
the form ``{"error": message, **details}`` with the matching status code.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None, **details):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        out = {"error": self.message}
        out.update(self.details)
        return out


class ValidationError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class LockedError(AppError):
    """Too many failed attempts; retry later."""
    status_code = 429


class UpstreamError(AppError):
    """Email, SMS or payment-gateway failure."""
    status_code = 500


class InternalError(AppError):
    status_code = 500
