# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import AuthenticationError, PermissionDeniedError
from .services import session_service, permission_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and resolve the principal.

    Sets the following Flask g attributes:
    - g.identity: the authenticated Identity
    - g.principal: Principal(user_id, role), role read from the profile now
    - g.session_context: the full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or idle token
    - The identity no longer has a profile
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify(AuthenticationError("Authentication required").to_dict()), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify(AuthenticationError("Invalid or expired token").to_dict()), 401

        # Never cached on the session: a role change applies to the next request
        try:
            principal = permission_service.load_principal(context.identity.id)
        except AuthenticationError as e:
            return jsonify(e.to_dict()), e.http_status

        g.identity = context.identity
        g.principal = principal
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the admin role. Must be stacked under @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "principal"):
            return jsonify(AuthenticationError("Authentication required").to_dict()), 401
        try:
            permission_service.require_admin(g.principal, resource=request.path, action=request.method)
        except PermissionDeniedError as e:
            return jsonify(e.to_dict()), e.http_status
        return f(*args, **kwargs)

    return decorated_function
