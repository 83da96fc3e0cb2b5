# Overview: Request authorization decorators for API routes.

"""
Procedure authorization gate.

Trust levels, outermost first:
- @optional_auth: identity if a valid token is present, otherwise None
- @require_auth: valid identity or 401
- @require_role(*roles) / @require_permission(code): 401 without identity,
  then 403 when the identity is not allowed

Identity is always checked before role or permission membership, so a 403
never appears for an anonymous caller.
"""

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import Role
from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def _log_denial(reason: str, required) -> None:
    user = getattr(g, "current_user", None)
    current_app.logger.warning(
        "Access denied: %s user_id=%s role=%s path=%s required=%s",
        reason,
        user.id if user else None,
        user.role if user else None,
        request.path,
        required,
    )


def optional_auth(f):
    """Attach identity when present; an absent or invalid token is not an error."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = None
        g.session_context = None
        token = _bearer_token()
        if token:
            context = session_service.validate_session(token)
            if context:
                g.current_user = context.user
                g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_auth(f):
    """
    Require authentication.

    Sets g.current_user, g.session_context and g.token. Returns 401 when the
    header is missing, or the token is invalid, expired, revoked or belongs
    to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Allow-list of roles. Use beneath @require_auth."""
    allowed = frozenset(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in allowed:
                _log_denial("role", sorted(allowed))
                return jsonify({
                    "error": "Forbidden",
                    "required_roles": sorted(allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_permission(permission_code: str):
    """Require a specific permission. Use beneath @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(g.current_user, permission_code)
            except PermissionDeniedError as e:
                _log_denial("permission", permission_code)
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not any(permission_service.user_has_permission(user, code) for code in permission_codes):
                _log_denial("permission", list(permission_codes))
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": list(permission_codes),
                    "message": f"Requires any of: {', '.join(permission_codes)}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


owner_only = require_role(Role.OWNER)
sales_cashier = require_role(Role.OWNER, Role.CASHIER_SALES)
service_cashier = require_role(Role.OWNER, Role.CASHIER_SERVICE)
master = require_role(Role.OWNER, Role.MASTER)
