"""
Pytest fixtures for payments portal backend tests.

Provides test database setup, one account per role, identities and auth
headers, and the test client.
"""

from decimal import Decimal

import pytest
from payportal import create_app
from payportal.config import TestingConfig
from payportal.extensions import db
from payportal.models import Transaction
from payportal.services.auth_service import create_user
from payportal.services.token_service import Identity, get_token_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def identity_of(user) -> Identity:
    return Identity(id=user.id, role=user.role, email=user.email)


@pytest.fixture(scope='function')
def customer(db_session):
    return create_user(name="Ann Lee", email="ann@example.com", password=PASSWORD, role="customer")


@pytest.fixture(scope='function')
def other_customer(db_session):
    return create_user(name="Carl Moss", email="carl@example.com", password=PASSWORD, role="customer")


@pytest.fixture(scope='function')
def employee(db_session):
    return create_user(name="Eve Stone", email="eve@example.com", password=PASSWORD, role="employee")


@pytest.fixture(scope='function')
def admin(db_session):
    return create_user(name="Ada King", email="ada@example.com", password=PASSWORD, role="admin")


@pytest.fixture(scope='function')
def customer_identity(customer):
    return identity_of(customer)


@pytest.fixture(scope='function')
def other_customer_identity(other_customer):
    return identity_of(other_customer)


@pytest.fixture(scope='function')
def employee_identity(employee):
    return identity_of(employee)


@pytest.fixture(scope='function')
def admin_identity(admin):
    return identity_of(admin)


def _headers(user) -> dict:
    return {"Authorization": f"Bearer {get_token_service().issue(user)}"}


@pytest.fixture(scope='function')
def customer_headers(customer):
    return _headers(customer)


@pytest.fixture(scope='function')
def other_customer_headers(other_customer):
    return _headers(other_customer)


@pytest.fixture(scope='function')
def employee_headers(employee):
    return _headers(employee)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture(scope='function')
def pending_transaction(db_session, customer):
    """A pending transfer owned by `customer`, inserted directly."""
    transaction = Transaction(
        customer_id=customer.id,
        swift_code="BOFAUS3N",
        amount=Decimal("250.00"),
        description="Rent",
        payment_method="bank_transfer",
        recipient_name="Bob",
        recipient_bank="Bank of Bob",
    )
    db_session.add(transaction)
    db_session.commit()
    return transaction
