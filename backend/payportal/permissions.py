"""
Role model and endpoint access table.

WHY: Every protected endpoint is listed here with the roles allowed to call
it. Routes do not carry their own role lists; the guard looks up the Flask
endpoint name in ROUTE_ROLES and one generic check decides.

DESIGN PRINCIPLES:
- Three fixed roles, no per-user overrides
- An endpoint missing from the table is denied to everyone (fail closed)
- Ownership rules (customer reads own transactions) live in the services,
  not here: this table only answers "may this role call this endpoint"
"""

# =============================================================================
# ROLES
# =============================================================================

CUSTOMER = "customer"
EMPLOYEE = "employee"
ADMIN = "admin"

ROLES = (CUSTOMER, EMPLOYEE, ADMIN)
DEFAULT_ROLE = CUSTOMER

ANY_ROLE = frozenset(ROLES)
STAFF = frozenset({EMPLOYEE, ADMIN})
ADMIN_ONLY = frozenset({ADMIN})
CUSTOMER_ONLY = frozenset({CUSTOMER})


# =============================================================================
# ENDPOINT -> ALLOWED ROLES
# =============================================================================

# Keys are Flask endpoint names ("<blueprint>.<view function>").
# Public endpoints (register, login, health) are not listed: they are not
# wrapped by the guard at all.
ROUTE_ROLES = {
    # Authentication
    "auth.logout": ANY_ROLE,
    "auth.me": ANY_ROLE,
    "auth.update_user": frozenset({ADMIN, CUSTOMER}),
    "auth.delete_user": ADMIN_ONLY,

    # Transactions
    "transactions.create_transaction": CUSTOMER_ONLY,
    "transactions.list_my_transactions": CUSTOMER_ONLY,
    "transactions.get_transaction": ANY_ROLE,
    "transactions.list_transactions": STAFF,
    "transactions.update_transaction_status": STAFF,
    "transactions.delete_transaction": ADMIN_ONLY,

    # Employee review queue
    "employees.list_transactions": STAFF,
    "employees.update_transaction_status": STAFF,

    # Administration
    "admin.dashboard_stats": ADMIN_ONLY,
    "admin.list_users": ADMIN_ONLY,
    "admin.get_user": ADMIN_ONLY,
    "admin.create_user": ADMIN_ONLY,
    "admin.update_user_role": ADMIN_ONLY,
    "admin.delete_user": ADMIN_ONLY,
    "admin.list_transactions": ADMIN_ONLY,
    "admin.get_transaction": ADMIN_ONLY,
    "admin.update_transaction_status": ADMIN_ONLY,
}


def is_valid_role(role) -> bool:
    return isinstance(role, str) and role in ROLES


def allowed_roles_for(endpoint: str | None) -> frozenset:
    """Roles allowed to call an endpoint; empty set when it is not listed."""
    if endpoint is None:
        return frozenset()
    return ROUTE_ROLES.get(endpoint, frozenset())
