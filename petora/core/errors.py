# petora/core/errors.py
"""
Domain error taxonomy.

Input validation failures use marshmallow's ``ValidationError`` directly; the
classes below cover the remaining outcomes a request can end with. Each one
carries the ``error_code`` and HTTP status the API answers with.
"""


class PetoraError(Exception):
    error_code = "INTERNAL_SERVER_ERROR"
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"error_code": self.error_code, "message": self.message}


class NotFoundError(PetoraError, LookupError):
    error_code = "NOT_FOUND"
    status_code = 404
    default_message = "The requested resource does not exist."


class ForbiddenError(PetoraError, PermissionError):
    error_code = "FORBIDDEN"
    status_code = 403
    default_message = "You are not allowed to perform this action."


class UnauthenticatedError(PetoraError):
    error_code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Authentication is required."


class MissingOwnerError(UnauthenticatedError):
    error_code = "MISSING_OWNER"
    default_message = "An authenticated owner is required to create this resource."


class UpstreamError(PetoraError, RuntimeError):
    """A database, blob store, identity provider or AI service call failed."""
    error_code = "UPSTREAM_ERROR"
    status_code = 502
    default_message = "A backing service is temporarily unavailable. Please try again."
