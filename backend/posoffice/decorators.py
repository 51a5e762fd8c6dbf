# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, request

from .errors import ForbiddenError, UnauthenticatedError
from .extensions import db
from .permissions import Capability, authorize, authorize_roles
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def presented_token() -> str | None:
    """Bearer header first, then the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    cookie_name = current_app.config.get("SESSION_COOKIE_NAME", "token")
    return request.cookies.get(cookie_name) or None


def require_auth(f):
    """
    Require a valid session.

    Sets:
    - g.current_user: the authenticated User
    - g.identity: {id, role, email}
    - g.session_token: the plaintext token presented (for logout)

    401 when no credential or an invalid one is presented, 403 when the
    account is inactive (raised as service errors, rendered by the app).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = presented_token()
        if not token:
            raise UnauthenticatedError("Authentication required")

        context = session_service.validate_session(db.session, token)

        g.current_user = context.user
        g.identity = context.identity
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: Capability):
    """Require the caller's role to carry `capability`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise UnauthenticatedError("Authentication required")

            result = authorize(g.current_user.role, capability)
            if not result:
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s required=%s path=%s",
                    g.current_user.id, g.current_user.role, capability.value, request.path,
                )
                raise ForbiddenError(
                    result.reason or "Forbidden",
                    details={"required": list(result.required)},
                )
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_roles(*roles):
    """Require the caller's role to be one of `roles`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise UnauthenticatedError("Authentication required")

            result = authorize_roles(g.current_user.role, roles)
            if not result:
                current_app.logger.warning(
                    "Role denied: user=%s role=%s allowed=%s path=%s",
                    g.current_user.id, g.current_user.role, ",".join(result.required), request.path,
                )
                raise ForbiddenError(
                    result.reason or "Forbidden",
                    details={"required": list(result.required)},
                )
            return f(*args, **kwargs)

        return decorated_function
    return decorator
