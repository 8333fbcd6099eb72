# Overview: Service-layer operations for bearer tokens; signs and verifies stateless credentials.

"""
Stateless Bearer Token Service

WHY: Requests carry a signed, time-limited token instead of a server-side
session. Verification needs only the signing key and the clock, so any
worker can authenticate a request without a database round trip.

TOKEN CLAIMS:
- sub:   account id (string, JWT convention)
- id:    account id (integer)
- role:  customer | employee | admin
- email: account email at issuance
- iat / exp: issuance and expiry (fixed 30-day window by default)

KNOWN LIMITATION (no revocation list):
- A token stays valid until it expires, even after logout, password change,
  role change or account deletion. revoke() is an explicit no-op.
- Adding revocation means a denylist keyed by a token id (jti) with
  TTL-bounded cleanup; it is not present.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from jose import JWTError, jwt

from ..permissions import is_valid_role
from payportal.time_utils import from_epoch, to_epoch, utcnow


DEFAULT_TTL = timedelta(days=30)
DEFAULT_ALGORITHM = "HS256"


class InvalidCredential(Exception):
    """Raised when a token is malformed, tampered with, or expired."""
    pass


@dataclass(frozen=True)
class Identity:
    """
    Decoded token identity attached to the request.

    Never re-read from storage: role and email are as of token issuance.
    """
    id: int
    role: str
    email: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None


class TokenService:
    """
    Issues and verifies signed credentials.

    The signing key is injected at construction (see create_app); the service
    holds no other state.
    """

    def __init__(self, secret_key: str, *, ttl: timedelta = DEFAULT_TTL, algorithm: str = DEFAULT_ALGORITHM):
        if not secret_key:
            raise ValueError("Token signing key is required")
        self._secret_key = secret_key
        self.ttl = ttl
        self.algorithm = algorithm

    def issue(self, account, *, now: datetime | None = None) -> str:
        """
        Sign a credential for an account (anything with id, role, email).

        Pure function of the account fields and the current time.
        """
        issued_at = now or utcnow()
        expires_at = issued_at + self.ttl
        claims = {
            "sub": str(account.id),
            "id": account.id,
            "role": account.role,
            "email": account.email,
            "iat": to_epoch(issued_at),
            "exp": to_epoch(expires_at),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        """
        Check signature and expiry and return the identity.

        Raises InvalidCredential for a bad signature, malformed payload or
        expired token. Does not consult any store.
        """
        if not token or not isinstance(token, str):
            raise InvalidCredential("Token missing")

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidCredential("Invalid or expired token") from e

        account_id = payload.get("id")
        role = payload.get("role")
        email = payload.get("email")
        exp = payload.get("exp")

        if not isinstance(account_id, int) or isinstance(account_id, bool):
            raise InvalidCredential("Malformed token payload")
        if payload.get("sub") != str(account_id):
            raise InvalidCredential("Malformed token payload")
        if not is_valid_role(role) or not isinstance(email, str):
            raise InvalidCredential("Malformed token payload")
        if not isinstance(exp, int):
            raise InvalidCredential("Malformed token payload")

        iat = payload.get("iat")
        return Identity(
            id=account_id,
            role=role,
            email=email,
            issued_at=from_epoch(iat) if isinstance(iat, int) else None,
            expires_at=from_epoch(exp),
        )

    def revoke(self, token: str) -> bool:
        """
        Revocation is not supported: tokens are stateless.

        Always returns False; the token stays valid until it expires.
        """
        return False


def get_token_service() -> TokenService:
    """Token service configured for the current app (see create_app)."""
    return current_app.extensions["token_service"]


def create_token_service(config) -> TokenService:
    return TokenService(
        config["TOKEN_SECRET_KEY"],
        ttl=timedelta(days=config.get("TOKEN_TTL_DAYS", 30)),
        algorithm=config.get("TOKEN_ALGORITHM", DEFAULT_ALGORITHM),
    )
