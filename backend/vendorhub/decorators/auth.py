from functools import wraps
from flask_jwt_extended import verify_jwt_in_request
from vendorhub.errors import PermissionDenied
from vendorhub.services.policy import current_permissions


def require_permissions(*paths: str):
    """Require every capability path in the caller's token ``perms`` claim."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            granted = current_permissions()
            missing = [p for p in paths if p not in granted]
            if missing:
                raise PermissionDenied(f"Missing permission: {', '.join(missing)}")
            return fn(*args, **kwargs)
        return wrapper
    return outer
