# petora/core/security.py
import logging
from functools import wraps

from flask import current_app
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from petora.core.errors import ForbiddenError


def admin_required(f):
    """
    Allows the call only when the stored profile of the caller has ``is_admin``.
    The flag is read from the database on every call, not from token claims,
    so revoking admin rights takes effect immediately.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user_id = get_jwt_identity()
        user_service = current_app.services['users']
        if not user_service.is_admin(user_id):
            logging.warning(f"Admin-only call rejected (user_id: {user_id}, endpoint: {f.__name__})")
            raise ForbiddenError("Administrator privileges are required.")
        return f(*args, **kwargs)

    return decorated_function
