"""
Login and Transaction Throttling Service

WHY: Prevent brute-force password attacks and bursts of transfer requests.

SECURITY FEATURES:
- Failed logins tracked per client address + email
- Lockout after LOGIN_MAX_FAILED_ATTEMPTS failures within the lockout window
- Successful logins are not counted
- Uses the security_events table for tracking (no separate counter store)
- Transaction creation capped per customer per window, counted from the
  transactions table itself
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SecurityEvent, Transaction
from payportal.time_utils import utcnow


# Defaults when no app config is available
MAX_FAILED_ATTEMPTS = 5
LOCKOUT_WINDOW_MINUTES = 15
TRANSACTION_CREATE_LIMIT = 10
TRANSACTION_CREATE_WINDOW_MINUTES = 60


class RateLimitedError(Exception):
    """Raised when a caller exceeds a throttle; carries the seconds until retry."""

    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(message)
        self.message = message
        self.retry_after_seconds = max(int(retry_after_seconds), 1)

    def to_dict(self) -> dict:
        return {"message": self.message, "retryAfterSeconds": self.retry_after_seconds}


def _setting(name: str, default: int) -> int:
    return int(current_app.config.get(name, default))


def login_key(email: str | None, ip_address: str | None) -> str:
    """Throttle key stored in SecurityEvent.action."""
    return f"{ip_address or 'unknown'}:{(email or '').strip().lower()}"


def get_recent_failed_attempts(key: str) -> int:
    """Count LOGIN_FAILED events for key within the lockout window."""
    cutoff = utcnow() - timedelta(minutes=_setting("LOGIN_LOCKOUT_WINDOW_MINUTES", LOCKOUT_WINDOW_MINUTES))
    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == key,
        SecurityEvent.occurred_at >= cutoff
    ).count()


def check_login_allowed(key: str) -> None:
    """
    Raise RateLimitedError when key has too many recent failures.

    The lockout ends one window after the oldest failure still counted.
    """
    window = timedelta(minutes=_setting("LOGIN_LOCKOUT_WINDOW_MINUTES", LOCKOUT_WINDOW_MINUTES))
    max_attempts = _setting("LOGIN_MAX_FAILED_ATTEMPTS", MAX_FAILED_ATTEMPTS)
    now = utcnow()
    cutoff = now - window

    recent = db.session.query(SecurityEvent.occurred_at).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == key,
        SecurityEvent.occurred_at >= cutoff
    ).order_by(SecurityEvent.occurred_at.desc()).limit(max_attempts).all()

    if len(recent) < max_attempts:
        return

    # The max_attempts-th most recent failure decides when a slot frees up
    unlock_at = recent[-1].occurred_at + window
    raise RateLimitedError(
        "Too many login attempts, please try again later",
        (unlock_at - now).total_seconds(),
    )


def record_failed_attempt(
    key: str,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials"
) -> int:
    """
    Record a failed login attempt.

    Returns the total number of recent failed attempts.
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type="LOGIN_FAILED",
        resource="/api/auth/login",
        action=key,  # Throttle key for counting
        success=False,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return get_recent_failed_attempts(key)


def record_successful_login(
    user_id: int,
    key: str,
    ip_address: str | None = None,
    user_agent: str | None = None
) -> None:
    event = SecurityEvent(
        user_id=user_id,
        event_type="LOGIN_SUCCESS",
        resource="/api/auth/login",
        action=key,
        success=True,
        reason=None,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()


def check_transaction_create_allowed(customer_id: int) -> None:
    """
    Raise RateLimitedError when the customer already created
    TRANSACTION_CREATE_LIMIT transactions within the window.
    """
    window = timedelta(minutes=_setting("TRANSACTION_CREATE_WINDOW_MINUTES", TRANSACTION_CREATE_WINDOW_MINUTES))
    limit = _setting("TRANSACTION_CREATE_LIMIT", TRANSACTION_CREATE_LIMIT)
    now = utcnow()

    recent = db.session.query(Transaction.created_at).filter(
        Transaction.customer_id == customer_id,
        Transaction.created_at >= now - window
    ).order_by(Transaction.created_at.desc()).limit(limit).all()

    if len(recent) < limit:
        return

    unlock_at = recent[-1].created_at + window
    raise RateLimitedError(
        "Too many transactions, please try again later",
        (unlock_at - now).total_seconds(),
    )


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days. Returns rows deleted."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
