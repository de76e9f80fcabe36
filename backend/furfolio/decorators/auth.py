from functools import wraps
from flask import abort, current_app
from flask_jwt_extended import verify_jwt_in_request
from furfolio import get_db
from furfolio.constants.permissions import Permission
from furfolio.services.access_control import AccessDenied
from furfolio.services.policy import current_access_control


def _flush_audit():
    try:
        get_db().commit()
    except Exception:
        # Do not raise – audit must not interfere with the access decision
        current_app.logger.exception('Failed to persist access audit')
        get_db().rollback()


def require_permissions(*perms: Permission):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            ac = current_access_control()
            try:
                for perm in perms:
                    ac.require(perm)
            except AccessDenied as e:
                _flush_audit()
                abort(403, description=e.reason)
            _flush_audit()
            return fn(*args, **kwargs)
        return wrapper
    return outer
