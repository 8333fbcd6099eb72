# Overview: JSON error responses shared by the API blueprints.

import sys

from flask import current_app, jsonify

from .services.auth_service import DuplicateEmailError, InvalidCredentialsError, InvalidRoleError
from .services.permission_service import AuthenticationError, PermissionDeniedError
from .services.throttle_service import RateLimitedError
from .services.transaction_service import InvalidTransitionError, TransactionNotFoundError
from .services.user_service import SelfModificationError, UserNotFoundError
from .validation import ValidationError


# Domain exceptions routes translate; anything else is a 500
DOMAIN_ERRORS = (
    ValidationError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidRoleError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitedError,
    InvalidTransitionError,
    TransactionNotFoundError,
    SelfModificationError,
    UserNotFoundError,
)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (DuplicateEmailError, 400),
    (InvalidRoleError, 400),
    (SelfModificationError, 400),
    (InvalidTransitionError, 400),
    (InvalidCredentialsError, 401),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (TransactionNotFoundError, 404),
    (UserNotFoundError, 404),
    (RateLimitedError, 429),
)


def error_response(message: str, status: int, errors: list | None = None):
    body = {"message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status


def json_error(exc: Exception):
    """{message, errors?} with the status code for a domain exception."""
    if isinstance(exc, ValidationError):
        return jsonify(exc.to_dict()), 400
    if isinstance(exc, RateLimitedError):
        response = jsonify(exc.to_dict())
        response.headers["Retry-After"] = str(exc.retry_after_seconds)
        return response, 429
    for error_class, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return error_response(str(exc), status)
    return internal_error("Unmapped error")


def internal_error(log_message: str):
    """
    Log the active exception and return a generic 500.

    Exception text is included only when EXPOSE_ERROR_DETAILS is set.
    """
    current_app.logger.exception(log_message)
    body = {"message": "Internal server error"}
    if current_app.config.get("EXPOSE_ERROR_DETAILS"):
        exc = sys.exc_info()[1]
        body["error"] = str(exc) if exc is not None else log_message
    return jsonify(body), 500
