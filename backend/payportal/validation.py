"""
Input validation and sanitization for request payloads.

Three payload shapes reach the domain: account registration/update, login,
and transaction creation (plus the small status/role bodies). Every
validator either returns a new dict holding the sanitized, normalized values
or raises ValidationError listing every field that failed. The request body
itself is never mutated, so a rejected request leaves nothing half-applied.

SANITIZATION:
- Free text (name, email, recipient fields, description) is trimmed and
  HTML-escaped before any rule runs
- Passwords are trimmed only; escaping would corrupt symbol characters
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from markupsafe import escape

from .models.transactions import DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS
from .permissions import ROLES


NAME_RE = re.compile(r"^[a-zA-Z\s]{2,50}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SWIFT_CODE_RE = re.compile(r"^[A-Z0-9]{8,11}$")
AMOUNT_RE = re.compile(r"^\d+(\.\d{1,2})?$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = "@$!%*?&"

MAX_EMAIL_LENGTH = 255
MAX_RECIPIENT_BANK_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

# Largest value a NUMERIC(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")
CENTS = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem. `errors` holds one entry per failed field."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Which keys a payload may carry and which must be present.

    - allowed_fields: anything else is rejected (security boundary)
    - required_fields: must be present and non-blank
    """
    allowed_fields: frozenset[str]
    required_fields: frozenset[str] = field(default_factory=frozenset)


REGISTRATION_POLICY = PayloadPolicy(
    allowed_fields=frozenset({"name", "email", "password", "role"}),
    required_fields=frozenset({"name", "email", "password"}),
)

PROFILE_UPDATE_POLICY = PayloadPolicy(
    allowed_fields=frozenset({"name", "email", "password", "role"}),
)

LOGIN_POLICY = PayloadPolicy(
    allowed_fields=frozenset({"email", "password"}),
    required_fields=frozenset({"email", "password"}),
)

TRANSACTION_POLICY = PayloadPolicy(
    allowed_fields=frozenset({
        "swiftCode", "amount", "recipientName", "recipientBank", "description", "paymentMethod",
    }),
    required_fields=frozenset({"swiftCode", "amount"}),
)

STATUS_POLICY = PayloadPolicy(
    allowed_fields=frozenset({"status", "adminNotes"}),
    required_fields=frozenset({"status"}),
)

ROLE_POLICY = PayloadPolicy(
    allowed_fields=frozenset({"role"}),
    required_fields=frozenset({"role"}),
)


# =============================================================================
# SANITIZATION
# =============================================================================

def sanitize_text(value: Any) -> Any:
    """Trim and HTML-escape a string; other types pass through unchanged."""
    if isinstance(value, str):
        return str(escape(value.strip()))
    return value


def trim_password(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def normalize_email(value: str) -> str:
    return sanitize_text(value).lower()


# =============================================================================
# FIELD RULES
# =============================================================================

class _Collector:
    """Accumulates field errors so one response lists every violation."""

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, field_name: str, message: str) -> None:
        self.errors.append({"field": field_name, "message": message})

    def raise_if_any(self, message: str) -> None:
        if self.errors:
            raise ValidationError(message, self.errors)


def _check_shape(payload: Any, policy: PayloadPolicy, errors: _Collector) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for key in payload:
        if key not in policy.allowed_fields:
            errors.add(key, f"Field not allowed: {key}")

    for key in sorted(policy.required_fields):
        value = payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.add(key, f"{key} is required")

    return payload


def _present(payload: dict, key: str) -> bool:
    value = payload.get(key)
    return value is not None and not (isinstance(value, str) and not value.strip())


def password_errors(password: Any) -> list[str]:
    """
    Password strength requirements:
    - Minimum 8 characters
    - At least one lowercase letter, one uppercase letter, one digit
    - At least one symbol from @$!%*?&
    """
    if not isinstance(password, str):
        return ["Password must be a string"]
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one digit")
    if not any(ch in PASSWORD_SYMBOLS for ch in password):
        problems.append(f"Password must contain at least one special character ({PASSWORD_SYMBOLS})")
    return problems


def validate_password_strength(password: Any) -> None:
    problems = password_errors(password)
    if problems:
        raise ValidationError(
            "Password does not meet requirements",
            [{"field": "password", "message": p} for p in problems],
        )


def parse_amount(raw: Any) -> Decimal:
    """
    Parse a transfer amount: strictly positive, at most two decimals.

    Accepts JSON numbers and numeric strings ("100", "100.5", "100.00").
    Returns a Decimal quantized to cents. Raises ValueError with a message
    suitable for the field error.
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError("Amount is required")
    if isinstance(raw, (int, float)):
        text = str(raw)
    elif isinstance(raw, str):
        text = sanitize_text(raw)
    else:
        raise ValueError("Invalid amount format (positive number with max 2 decimals)")

    if not AMOUNT_RE.match(text):
        raise ValueError("Invalid amount format (positive number with max 2 decimals)")

    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError("Invalid amount format (positive number with max 2 decimals)")

    if value <= 0:
        raise ValueError("Amount must be greater than 0")
    if value > MAX_AMOUNT:
        raise ValueError(f"Amount cannot exceed {MAX_AMOUNT}")

    return value.quantize(CENTS)


def _validate_name(value: Any, field_name: str, errors: _Collector) -> str | None:
    if not isinstance(value, str):
        errors.add(field_name, f"{field_name} must be a string")
        return None
    cleaned = sanitize_text(value)
    if not NAME_RE.match(cleaned):
        errors.add(field_name, "Invalid name format (2-50 letters and spaces only)")
        return None
    return cleaned


def _validate_email(value: Any, errors: _Collector) -> str | None:
    if not isinstance(value, str):
        errors.add("email", "email must be a string")
        return None
    cleaned = normalize_email(value)
    if len(cleaned) > MAX_EMAIL_LENGTH or not EMAIL_RE.match(cleaned):
        errors.add("email", "Invalid email format")
        return None
    return cleaned


def _validate_free_text(value: Any, field_name: str, max_length: int, errors: _Collector) -> str | None:
    if not isinstance(value, str):
        errors.add(field_name, f"{field_name} must be a string")
        return None
    cleaned = sanitize_text(value)
    if len(cleaned) > max_length:
        errors.add(field_name, f"{field_name} exceeds max length {max_length}")
        return None
    return cleaned


# =============================================================================
# PAYLOAD VALIDATORS
# =============================================================================

def validate_account_payload(payload: Any, *, partial: bool = False) -> dict:
    """
    Validate registration (partial=False) or profile update (partial=True).

    Returns a dict with the keys that were supplied: name, email, password,
    role. Role membership is checked here; whether the caller may set it is
    the account directory's decision.
    """
    errors = _Collector()
    policy = PROFILE_UPDATE_POLICY if partial else REGISTRATION_POLICY
    payload = _check_shape(payload, policy, errors)

    cleaned: dict = {}

    if _present(payload, "name"):
        name = _validate_name(payload["name"], "name", errors)
        if name is not None:
            cleaned["name"] = name

    if _present(payload, "email"):
        email = _validate_email(payload["email"], errors)
        if email is not None:
            cleaned["email"] = email

    if _present(payload, "password"):
        password = trim_password(payload["password"])
        problems = password_errors(password)
        for problem in problems:
            errors.add("password", problem)
        if not problems:
            cleaned["password"] = password

    if _present(payload, "role"):
        role = sanitize_text(payload["role"])
        if role not in ROLES:
            errors.add("role", f"Invalid role. Must be one of: {', '.join(ROLES)}")
        else:
            cleaned["role"] = role

    errors.raise_if_any("User validation failed")

    if partial and not cleaned:
        raise ValidationError("No updatable fields provided")

    return cleaned


def validate_login_payload(payload: Any) -> dict:
    errors = _Collector()
    payload = _check_shape(payload, LOGIN_POLICY, errors)

    cleaned: dict = {}
    if _present(payload, "email"):
        email = _validate_email(payload["email"], errors)
        if email is not None:
            cleaned["email"] = email
    if _present(payload, "password"):
        password = payload["password"]
        if not isinstance(password, str):
            errors.add("password", "password must be a string")
        else:
            cleaned["password"] = trim_password(password)

    errors.raise_if_any("Email and password are required")
    return cleaned


def validate_transaction_payload(payload: Any) -> dict:
    """
    Validate a transfer request.

    Returns model-ready keys: swift_code, amount (Decimal), recipient_name,
    recipient_bank, description, payment_method. Optional fields are None
    when absent; payment_method defaults to bank_transfer.
    """
    errors = _Collector()
    payload = _check_shape(payload, TRANSACTION_POLICY, errors)

    cleaned: dict = {
        "recipient_name": None,
        "recipient_bank": None,
        "description": None,
        "payment_method": DEFAULT_PAYMENT_METHOD,
    }

    if _present(payload, "swiftCode"):
        swift = sanitize_text(payload["swiftCode"])
        if not isinstance(swift, str) or not SWIFT_CODE_RE.match(swift):
            errors.add("swiftCode", "Invalid SWIFT code format (8-11 uppercase alphanumeric)")
        else:
            cleaned["swift_code"] = swift

    if _present(payload, "amount"):
        try:
            cleaned["amount"] = parse_amount(payload["amount"])
        except ValueError as e:
            errors.add("amount", str(e))

    if _present(payload, "recipientName"):
        recipient = _validate_name(payload["recipientName"], "recipientName", errors)
        if recipient is not None:
            cleaned["recipient_name"] = recipient

    if _present(payload, "recipientBank"):
        bank = _validate_free_text(payload["recipientBank"], "recipientBank", MAX_RECIPIENT_BANK_LENGTH, errors)
        if bank is not None:
            cleaned["recipient_bank"] = bank

    if _present(payload, "description"):
        description = _validate_free_text(payload["description"], "description", MAX_DESCRIPTION_LENGTH, errors)
        if description is not None:
            cleaned["description"] = description

    if _present(payload, "paymentMethod"):
        method = sanitize_text(payload["paymentMethod"])
        if method not in PAYMENT_METHODS:
            errors.add(
                "paymentMethod",
                f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}",
            )
        else:
            cleaned["payment_method"] = method

    errors.raise_if_any("Transaction validation failed")
    return cleaned


def validate_status_payload(payload: Any) -> dict:
    """Extract the requested status, lowercased. Membership is checked by the state machine."""
    errors = _Collector()
    payload = _check_shape(payload, STATUS_POLICY, errors)

    cleaned: dict = {}
    if _present(payload, "status"):
        status = payload["status"]
        if not isinstance(status, str):
            errors.add("status", "status must be a string")
        else:
            cleaned["status"] = sanitize_text(status).lower()

    if _present(payload, "adminNotes"):
        notes = _validate_free_text(payload["adminNotes"], "adminNotes", MAX_DESCRIPTION_LENGTH, errors)
        if notes is not None:
            cleaned["notes"] = notes

    errors.raise_if_any("Status is required")
    return cleaned


def validate_role_payload(payload: Any) -> dict:
    """Extract the requested role. Membership is checked by the account directory."""
    errors = _Collector()
    payload = _check_shape(payload, ROLE_POLICY, errors)

    cleaned: dict = {}
    if _present(payload, "role"):
        role = payload["role"]
        if not isinstance(role, str):
            errors.add("role", "role must be a string")
        else:
            cleaned["role"] = sanitize_text(role).lower()

    errors.raise_if_any("Role is required")
    return cleaned
