# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password change
- Login throttling per client address + email (429 with Retry-After)
- Identical 401 for unknown email and wrong password
- Stateless bearer tokens; logout has no server-side effect
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..responses import DOMAIN_ERRORS, internal_error, json_error
from ..services import auth_service, permission_service, throttle_service, user_service
from ..services.auth_service import InvalidCredentialsError
from ..services.token_service import get_token_service
from ..validation import validate_account_payload, validate_login_payload


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client():
    return request.remote_addr, request.headers.get("User-Agent")


@auth_bp.post("/register")
def register():
    """
    Self-registration.

    Request body:
    - name: str (required) - 2-50 letters and spaces
    - email: str (required)
    - password: str (required) - 8+ chars, upper, lower, digit, symbol
    - role: str (optional) - customer (default), employee or admin

    Returns:
        201: {message, token, user}
        400: validation failed / email already registered
    """
    try:
        fields = validate_account_payload(request.get_json(silent=True))
        user = auth_service.register(fields)

        ip_address, user_agent = _client()
        permission_service.log_security_event(
            user_id=user.id,
            event_type="USER_REGISTERED",
            success=True,
            resource=request.path,
            action=request.method,
            reason=f"Registered as {user.role}",
            ip_address=ip_address,
            user_agent=user_agent,
        )

        token = get_token_service().issue(user)
        return jsonify({
            "message": "User registered successfully",
            "token": token,
            "user": user.to_dict(),
        }), 201

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to register user")


@auth_bp.post("/login")
def login():
    """
    Authenticate with email and password and receive a bearer token.

    SECURITY:
    - Checks the throttle before attempting authentication
    - Records failed attempts for throttling
    - Records successful logins for the audit trail
    """
    try:
        fields = validate_login_payload(request.get_json(silent=True))
        ip_address, user_agent = _client()
        key = throttle_service.login_key(fields["email"], ip_address)

        throttle_service.check_login_allowed(key)

        try:
            user = auth_service.authenticate(fields["email"], fields["password"])
        except InvalidCredentialsError as e:
            throttle_service.record_failed_attempt(
                key,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return json_error(e)

        throttle_service.record_successful_login(
            user_id=user.id,
            key=key,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        token = get_token_service().issue(user)
        return jsonify({
            "message": "Login successful",
            "token": token,
            "user": user.to_dict(),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to login user")


@auth_bp.post("/logout")
@require_auth
@require_roles
def logout():
    """
    Logout acknowledgement.

    Tokens are stateless: the presented token stays valid until it expires.
    The client is expected to discard it.
    """
    try:
        token = request.headers.get("Authorization", "")[len("Bearer "):]
        get_token_service().revoke(token)

        ip_address, user_agent = _client()
        permission_service.log_security_event(
            user_id=g.identity.id,
            event_type="LOGOUT",
            success=True,
            resource=request.path,
            action=request.method,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({"message": "Logged out successfully"}), 200

    except Exception:
        return internal_error("Failed to logout user")


@auth_bp.get("/me")
@require_auth
@require_roles
def me():
    """Current account, loaded by the id in the token."""
    try:
        user = user_service.get_user(g.identity.id)
        return jsonify({"user": user.to_dict()}), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to load current user")


@auth_bp.put("/update/<int:user_id>")
@require_auth
@require_roles
def update_user(user_id: int):
    """
    Update name, email, password or role.

    Customers: own account only, no role changes.
    Admins: any account; cannot change their own role.
    Already-issued tokens are not revoked.
    """
    try:
        fields = validate_account_payload(request.get_json(silent=True), partial=True)
        user = user_service.update_profile(g.identity, user_id, fields)
        return jsonify({
            "message": "User updated successfully",
            "user": user.to_dict(),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to update user")


@auth_bp.delete("/delete/<int:user_id>")
@require_auth
@require_roles
def delete_user(user_id: int):
    """Delete an account and its transactions (admin, never self)."""
    try:
        result = user_service.remove_user(g.identity, user_id)
        return jsonify({
            "message": "User and associated transactions deleted successfully",
            **result,
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to delete user")
