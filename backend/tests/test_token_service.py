"""
Token service tests.

Verifies:
- Issued tokens verify back to the same identity
- Tampered, foreign-key and expired tokens are rejected
- Expiry is a fixed window from issuance
- revoke() is a no-op: the token keeps verifying
"""

import calendar
from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from payportal.services.token_service import InvalidCredential, TokenService
from payportal.time_utils import utcnow


SECRET = "unit-test-secret"


@pytest.fixture
def service():
    return TokenService(SECRET)


@pytest.fixture
def account():
    return SimpleNamespace(id=7, role="employee", email="eve@example.com")


class TestIssueAndVerify:

    def test_round_trip_identity(self, service, account):
        identity = service.verify(service.issue(account))
        assert identity.id == 7
        assert identity.role == "employee"
        assert identity.email == "eve@example.com"

    def test_expiry_is_thirty_days_after_issue(self, service, account):
        now = utcnow().replace(microsecond=0)
        identity = service.verify(service.issue(account, now=now))
        assert identity.issued_at == now
        assert identity.expires_at - identity.issued_at == timedelta(days=30)

    def test_configured_ttl(self, account):
        short = TokenService(SECRET, ttl=timedelta(hours=1))
        now = utcnow().replace(microsecond=0)
        identity = short.verify(short.issue(account, now=now))
        assert identity.expires_at == now + timedelta(hours=1)

    def test_missing_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService("")


class TestRejections:

    def test_expired_token(self, service, account):
        token = service.issue(account, now=utcnow() - timedelta(days=31))
        with pytest.raises(InvalidCredential):
            service.verify(token)

    def test_other_signing_key(self, service, account):
        token = TokenService("some-other-secret").issue(account)
        with pytest.raises(InvalidCredential):
            service.verify(token)

    def test_tampered_payload(self, service, account):
        header, payload, signature = service.issue(account).split(".")
        forged = jwt.encode({"id": 7, "role": "admin", "sub": "7", "email": "x@y.z"}, "guess")
        _, forged_payload, _ = forged.split(".")
        with pytest.raises(InvalidCredential):
            service.verify(".".join([header, forged_payload, signature]))

    def test_garbage(self, service):
        with pytest.raises(InvalidCredential):
            service.verify("not-a-token")

    def test_empty(self, service):
        with pytest.raises(InvalidCredential):
            service.verify("")

    def test_unknown_role_in_payload(self, service):
        now = utcnow()
        token = jwt.encode(
            {
                "sub": "1", "id": 1, "role": "superuser", "email": "a@b.c",
                "iat": calendar.timegm(now.utctimetuple()),
                "exp": calendar.timegm((now + timedelta(days=1)).utctimetuple()),
            },
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidCredential):
            service.verify(token)


class TestNoRevocation:

    def test_revoke_is_noop(self, service, account):
        token = service.issue(account)
        assert service.revoke(token) is False
        assert service.verify(token).id == account.id
