"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Invalid, expired and foreign tokens return 401 without details
- Each role is denied endpoints outside its ROUTE_ROLES entry (403)
- Every registered endpoint is either public or listed in ROUTE_ROLES
- Denials are written to security_events
"""

from datetime import timedelta

import pytest

from payportal.models import SecurityEvent
from payportal.permissions import ROUTE_ROLES, allowed_roles_for
from payportal.services.token_service import TokenService, get_token_service
from payportal.time_utils import utcnow


PUBLIC_ENDPOINTS = {"static", "auth.register", "auth.login", "system.health"}

PROTECTED = [
    ("POST", "/api/auth/logout"),
    ("GET", "/api/auth/me"),
    ("PUT", "/api/auth/update/1"),
    ("DELETE", "/api/auth/delete/1"),
    ("POST", "/api/transactions"),
    ("GET", "/api/transactions/my"),
    ("GET", "/api/transactions"),
    ("GET", "/api/transactions/1"),
    ("PUT", "/api/transactions/1/status"),
    ("DELETE", "/api/transactions/1"),
    ("GET", "/api/employees/transactions"),
    ("PATCH", "/api/employees/transactions/1/status"),
    ("GET", "/api/admin/dashboard/stats"),
    ("GET", "/api/admin/users"),
    ("POST", "/api/admin/users"),
    ("GET", "/api/admin/users/1"),
    ("PUT", "/api/admin/users/1/role"),
    ("DELETE", "/api/admin/users/1"),
    ("GET", "/api/admin/transactions"),
    ("GET", "/api/admin/transactions/1"),
    ("PUT", "/api/admin/transactions/1/status"),
]


# =============================================================================
# ROUTE TABLE COVERAGE
# =============================================================================


class TestRouteTable:

    def test_every_endpoint_is_public_or_listed(self, app):
        endpoints = {rule.endpoint for rule in app.url_map.iter_rules()}
        unlisted = endpoints - PUBLIC_ENDPOINTS - set(ROUTE_ROLES)
        assert unlisted == set()

    def test_no_stale_table_entries(self, app):
        endpoints = {rule.endpoint for rule in app.url_map.iter_rules()}
        assert set(ROUTE_ROLES) - endpoints == set()

    def test_unlisted_endpoint_denies_everyone(self):
        assert allowed_roles_for("nowhere.view") == frozenset()
        assert allowed_roles_for(None) == frozenset()


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize("method,path", PROTECTED)
    def test_requires_auth(self, client, db_session, method, path):
        resp = client.open(path, method=method)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["message"]

    def test_wrong_scheme(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401
        assert resp.get_json() == {"message": "Invalid or expired token"}

    def test_expired_token(self, client, customer):
        token = get_token_service().issue(customer, now=utcnow() - timedelta(days=31))
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_token_signed_with_other_key(self, client, customer):
        token = TokenService("not-the-server-key").issue(customer)
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401


# =============================================================================
# ROLE DENIALS (403)
# =============================================================================


class TestCustomerDenied:

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/transactions"),
        ("PUT", "/api/transactions/1/status"),
        ("DELETE", "/api/transactions/1"),
        ("GET", "/api/employees/transactions"),
        ("PATCH", "/api/employees/transactions/1/status"),
        ("GET", "/api/admin/users"),
        ("PUT", "/api/admin/users/1/role"),
        ("GET", "/api/admin/dashboard/stats"),
        ("DELETE", "/api/auth/delete/1"),
    ])
    def test_denied(self, client, customer_headers, method, path):
        resp = client.open(path, method=method, headers=customer_headers, json={"status": "approved"})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestEmployeeDenied:

    @pytest.mark.parametrize("method,path", [
        ("POST", "/api/transactions"),
        ("GET", "/api/transactions/my"),
        ("DELETE", "/api/transactions/1"),
        ("GET", "/api/admin/users"),
        ("POST", "/api/admin/users"),
        ("DELETE", "/api/admin/users/1"),
        ("PUT", "/api/admin/transactions/1/status"),
        ("PUT", "/api/auth/update/1"),
    ])
    def test_denied(self, client, employee_headers, method, path):
        resp = client.open(path, method=method, headers=employee_headers, json={"role": "admin"})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestAdminDenied:

    def test_admin_cannot_create_transaction(self, client, admin_headers):
        resp = client.post(
            "/api/transactions",
            json={"swiftCode": "BOFAUS3N", "amount": 10},
            headers=admin_headers,
        )
        assert resp.status_code == 403


class TestDenialAudit:

    def test_denial_logged(self, client, db_session, customer, customer_headers):
        client.get("/api/admin/users", headers=customer_headers)
        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == customer.id
        assert event.resource == "/api/admin/users"
        assert event.action == "GET"
        assert event.success is False


class TestTokenNotRevalidated:

    def test_old_role_survives_role_change(self, client, customer, customer_headers, admin_headers):
        # Token issued before the role change still carries "customer"
        resp = client.put(
            f"/api/admin/users/{customer.id}/role", json={"role": "employee"}, headers=admin_headers,
        )
        assert resp.status_code == 200
        resp = client.get("/api/transactions/my", headers=customer_headers)
        assert resp.status_code == 200

    def test_token_survives_logout(self, client, customer_headers):
        assert client.post("/api/auth/logout", headers=customer_headers).status_code == 200
        assert client.get("/api/auth/me", headers=customer_headers).status_code == 200
