# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import allowed_roles_for
from .services import permission_service
from .services.permission_service import AuthenticationError, PermissionDeniedError
from .services.token_service import get_token_service


def _is_authenticated() -> bool:
    return getattr(g, 'identity', None) is not None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.identity (id, role, email decoded from the token). The identity is
    never re-read from the database: a token stays valid for its whole
    lifetime even if the account changes.

    SECURITY: Returns 401 if:
    - No Authorization header / not a Bearer token
    - Bad signature, malformed payload or expired token
    The reason verification failed is not returned to the client.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.identity = permission_service.authenticate(
                request.headers.get("Authorization"),
                get_token_service(),
            )
        except AuthenticationError as e:
            return jsonify({"message": str(e)}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_roles(f):
    """
    Require the caller's role to be allowed for this endpoint.

    Allowed roles come from ROUTE_ROLES keyed by the Flask endpoint name; an
    endpoint missing from the table denies everyone. Denials are written to
    security_events. Must be stacked under @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Ensure @require_auth was called first
        if not _is_authenticated():
            return jsonify({"message": "Authentication required"}), 401

        try:
            permission_service.require_permission(
                g.identity,
                allowed_roles_for(request.endpoint),
                resource=request.path,
                action=request.method,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
        except PermissionDeniedError as e:
            return jsonify({"message": str(e)}), 403

        return f(*args, **kwargs)

    return decorated_function
