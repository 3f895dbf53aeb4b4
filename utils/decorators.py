"""Authorization decorators for admin-only endpoints."""
from functools import wraps

from flask import current_app, request
from flask_login import current_user

from utils.errors import Unauthorized


def admin_required(view_func):
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        if current_user.is_authenticated:
            return view_func(*args, **kwargs)

        current_app.logger.warning(
            "Unauthorized admin access attempt",
            extra={"path": request.path, "method": request.method, "ip_address": request.remote_addr},
        )
        raise Unauthorized()

    return wrapped
