# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Account Registration and Authentication Service

WHY: Every transfer request and review must be attributable to one account.
Uses bcrypt for password hashing; plaintext passwords are never stored or
returned.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Emails are compared lowercased (case-insensitive uniqueness)
- authenticate() gives the same error for an unknown email and a wrong
  password, and spends a bcrypt check in both cases
- Tokens are issued separately (see token_service.py)
"""

from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_ROLE, is_valid_role
from ..validation import normalize_email, validate_password_strength


DEFAULT_BCRYPT_ROUNDS = 12

# Compared against when the email is unknown, so both failure paths cost one bcrypt check
_DUMMY_HASH: bytes | None = None


class DuplicateEmailError(ValueError):
    """Raised when an email is already registered (case-insensitive)."""
    pass


class InvalidCredentialsError(Exception):
    """Raised for an unknown email or a wrong password; the two are indistinguishable."""
    pass


class InvalidRoleError(ValueError):
    """Raised when a role is not customer, employee or admin."""
    pass


def _bcrypt_rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))
    except RuntimeError:
        # Outside an application context (scripts)
        return DEFAULT_BCRYPT_ROUNDS


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    bcrypt.checkpw() compares in constant time.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def _burn_password_check(password: str) -> None:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=_bcrypt_rounds()))
    bcrypt.checkpw((password or "").encode('utf-8'), _DUMMY_HASH)


def find_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == normalize_email(email)).first()


def email_taken(email: str, *, exclude_user_id: int | None = None) -> bool:
    query = db.session.query(User.id).filter(User.email == normalize_email(email))
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(name: str, email: str, password: str, role: str | None = None) -> User:
    """
    Create a new account with a bcrypt password hash.

    Args:
        name: Display name (already sanitized)
        email: Email address; stored lowercased
        password: Plaintext password meeting strength requirements
        role: customer | employee | admin (default customer)

    Returns:
        Created User

    Raises:
        DuplicateEmailError: email already registered
        InvalidRoleError: role not in the enumeration
        ValidationError: password too weak
    """
    role = role or DEFAULT_ROLE
    if not is_valid_role(role):
        raise InvalidRoleError(f"Invalid role '{role}'")

    email = normalize_email(email)
    if email_taken(email):
        raise DuplicateEmailError("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent registration with the same email won the unique constraint
        db.session.rollback()
        raise DuplicateEmailError("Email already registered")
    return user


def register(fields: dict) -> User:
    """
    Self-registration from a validated payload (see validate_account_payload).

    Role defaults to customer unless a valid role was supplied.
    """
    return create_user(
        name=fields["name"],
        email=fields["email"],
        password=fields["password"],
        role=fields.get("role") or DEFAULT_ROLE,
    )


def authenticate(email: str, password: str) -> User:
    """
    Authenticate by email and password.

    Returns the User on success. Raises InvalidCredentialsError with the same
    message whether the email is unknown or the password is wrong.
    """
    user = find_user_by_email(email) if email else None

    if user is None:
        _burn_password_check(password)
        raise InvalidCredentialsError("Invalid credentials")

    if not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials")

    return user
