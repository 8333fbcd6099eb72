"""
CLI command tests (flask system / users / maintenance).
"""

from datetime import timedelta

from payportal.models import SecurityEvent, User
from payportal.services.auth_service import verify_password
from payportal.time_utils import utcnow


def _invoke(app, args):
    return app.test_cli_runner().invoke(args=args)


class TestSystemInit:

    def test_creates_default_staff(self, app, db_session):
        result = _invoke(app, ["system", "init"])
        assert result.exit_code == 0, result.output
        assert "DONE" in result.output

        admin = db_session.query(User).filter_by(email="admin@payportal.local").one()
        employee = db_session.query(User).filter_by(email="employee@payportal.local").one()
        assert admin.role == "admin"
        assert employee.role == "employee"
        assert verify_password("Password123!", admin.password_hash)

    def test_idempotent(self, app, db_session):
        _invoke(app, ["system", "init"])
        result = _invoke(app, ["system", "init"])
        assert result.exit_code == 0
        assert "Using existing" in result.output
        assert db_session.query(User).count() == 2


class TestUsersCommands:

    def test_create_and_list(self, app, db_session):
        result = _invoke(app, [
            "users", "create", "--name", "Ann Lee", "--email", "Ann@X.com",
            "--password", "Abcdef1!", "--role", "employee",
        ])
        assert result.exit_code == 0, result.output
        assert "PASS Created user" in result.output
        assert db_session.query(User).filter_by(email="ann@x.com").one().role == "employee"

        result = _invoke(app, ["users", "list", "--role", "employee"])
        assert "ann@x.com" in result.output

    def test_create_weak_password_reports_fields(self, app, db_session):
        result = _invoke(app, [
            "users", "create", "--name", "Ann Lee", "--email", "ann@x.com",
            "--password", "weak", "--role", "customer",
        ])
        assert "FAIL" in result.output
        assert "password:" in result.output
        assert db_session.query(User).count() == 0

    def test_list_empty(self, app, db_session):
        assert "No users found." in _invoke(app, ["users", "list"]).output


class TestMaintenance:

    def test_cleanup_security_events(self, app, db_session):
        db_session.add_all([
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow() - timedelta(days=120)),
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow()),
        ])
        db_session.commit()

        result = _invoke(app, ["maintenance", "cleanup-security-events", "--retention-days", "90"])
        assert result.exit_code == 0
        assert "Deleted 1 security events" in result.output
        assert db_session.query(SecurityEvent).count() == 1
