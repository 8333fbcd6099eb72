# Overview: Service-layer operations for authentication and role checks; writes the security audit trail.

"""
Authorization Guard and Security Event Logging

WHY: Every protected request must prove who it is (bearer token) and be
allowed by role before any domain logic runs. Denials are logged so repeated
probing shows up in the audit trail.

DESIGN PRINCIPLES:
- Fail closed: an empty allowed-role set denies everyone
- Log denials only: successful checks are not logged
- The identity comes from the token alone; storage is never re-read here
"""

from __future__ import annotations

from typing import Iterable

from ..extensions import db
from ..models import SecurityEvent
from .token_service import Identity, InvalidCredential, TokenService
from payportal.time_utils import utcnow


BEARER_PREFIX = "Bearer "


class AuthenticationError(Exception):
    """Raised when a request carries no credential or an invalid one (401)."""
    pass


class PermissionDeniedError(Exception):
    """Raised when the caller's role or ownership does not allow the action (403)."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    *,
    commit: bool = True,
) -> SecurityEvent:
    """
    Append an event to the security audit trail.

    With commit=False the event joins the caller's unit of work and is
    persisted (or discarded) together with the domain change it describes.

    event_type examples:
    - LOGIN_SUCCESS / LOGIN_FAILED / LOGOUT
    - PERMISSION_DENIED
    - USER_REGISTERED / USER_CREATED / USER_UPDATED / USER_DELETED
    - ROLE_CHANGED
    - TRANSACTION_REVIEWED / TRANSACTION_DELETED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def extract_bearer_token(auth_header: str | None) -> str:
    """Return the token from an "Authorization: Bearer <token>" header."""
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise AuthenticationError("No token provided")
    token = auth_header[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("No token provided")
    return token


def authenticate(auth_header: str | None, token_service: TokenService) -> Identity:
    """
    Resolve the request identity from its Authorization header.

    Raises AuthenticationError when the header is missing or the token does
    not verify. The verification reason is not passed on to the client.
    """
    token = extract_bearer_token(auth_header)
    try:
        return token_service.verify(token)
    except InvalidCredential:
        raise AuthenticationError("Invalid or expired token")


def has_role(identity: Identity, allowed_roles: Iterable[str]) -> bool:
    return identity is not None and identity.role in frozenset(allowed_roles)


def authorize(identity: Identity, allowed_roles: Iterable[str]) -> None:
    """
    Require identity.role to be one of allowed_roles.

    Raises PermissionDeniedError otherwise.
    """
    if not has_role(identity, allowed_roles):
        raise PermissionDeniedError("Access denied: Insufficient permissions")


def require_permission(
    identity: Identity,
    allowed_roles: Iterable[str],
    resource: str | None = None,
    action: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    authorize() plus a PERMISSION_DENIED audit entry on failure.

    Raises PermissionDeniedError if the role is not allowed.
    """
    allowed = frozenset(allowed_roles)
    try:
        authorize(identity, allowed)
    except PermissionDeniedError:
        log_security_event(
            user_id=identity.id if identity else None,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=action,
            reason=f"Role '{identity.role if identity else None}' not in: {', '.join(sorted(allowed)) or '(none)'}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise
