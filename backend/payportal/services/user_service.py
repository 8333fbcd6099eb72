# Overview: Service-layer operations for the account directory; role changes, removal and profile updates.

"""
Account Directory Service

WHY: Roles decide what every other endpoint allows, so changing or removing
an account is an administrator action with self-protection rules:
- An admin cannot change its own role (no accidental self-demotion)
- An admin cannot delete its own account (no orphaned installation)

Role changes are a single conditional UPDATE keyed by id; removal deletes
the account and its transactions in one database transaction.

KNOWN LIMITATION: Changing a password or role does not invalidate tokens
already issued to the account (see token_service.py).
"""

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Transaction, User
from ..permissions import ADMIN, ADMIN_ONLY, CUSTOMER, is_valid_role
from ..time_utils import utcnow
from .auth_service import (
    DuplicateEmailError,
    InvalidRoleError,
    create_user as _create_account,
    email_taken,
    hash_password,
)
from .concurrency import compare_and_set
from .permission_service import PermissionDeniedError, authorize, log_security_event
from .token_service import Identity


RECENT_TRANSACTIONS_LIMIT = 10
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

# Query-string sort keys -> columns
USER_SORT_COLUMNS = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "name": User.name,
    "email": User.email,
    "role": User.role,
}


class UserNotFoundError(Exception):
    """Raised when the target account does not exist."""
    pass


class SelfModificationError(Exception):
    """Raised when an admin targets its own account for a role change or deletion."""
    pass


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    return user


def get_user_detail(actor: Identity, user_id: int) -> dict:
    """Account plus its ten most recent transactions (admin view)."""
    authorize(actor, ADMIN_ONLY)
    user = get_user(user_id)
    recent = (
        db.session.query(Transaction)
        .filter(Transaction.customer_id == user.id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(RECENT_TRANSACTIONS_LIMIT)
        .all()
    )
    data = user.to_dict()
    data["recentTransactions"] = [t.to_dict(admin_view=True) for t in recent]
    return data


def list_users(
    actor: Identity,
    *,
    search: str | None = None,
    role: str | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int | None = 1,
    limit: int | None = DEFAULT_PAGE_SIZE,
) -> dict:
    """
    Admin directory listing.

    Args:
        search: case-insensitive substring of name or email
        role: only accounts with this role (ignored when not a valid role)
        sort_by: createdAt | updatedAt | name | email | role (default createdAt)
        sort_order: asc | desc
        page / limit: 1-indexed page, page size capped at MAX_PAGE_SIZE
    """
    authorize(actor, ADMIN_ONLY)

    query = db.session.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role and is_valid_role(role):
        query = query.filter(User.role == role)

    column = USER_SORT_COLUMNS.get(sort_by, User.created_at)
    if sort_order == "asc":
        query = query.order_by(column.asc(), User.id.asc())
    else:
        query = query.order_by(column.desc(), User.id.desc())

    limit = max(1, min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
    page = max(page or 1, 1)

    total = query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    users = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "users": [u.to_dict() for u in users],
        "pagination": {
            "currentPage": page,
            "limit": limit,
            "totalPages": total_pages,
            "totalUsers": total,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


def create_user(actor: Identity, fields: dict) -> User:
    """Admin-initiated account creation; any valid role may be assigned."""
    authorize(actor, ADMIN_ONLY)
    user = _create_account(
        name=fields["name"],
        email=fields["email"],
        password=fields["password"],
        role=fields.get("role") or CUSTOMER,
    )
    log_security_event(
        user_id=actor.id,
        event_type="USER_CREATED",
        success=True,
        resource=f"/api/admin/users/{user.id}",
        action="POST",
        reason=f"Created {user.role} account {user.email}",
    )
    return user


def set_role(actor: Identity, target_id: int, role: str) -> User:
    """
    Change an account's role.

    Raises:
        PermissionDeniedError: actor is not an admin
        SelfModificationError: target is the actor
        InvalidRoleError: role not in the enumeration
        UserNotFoundError: no such account
    """
    authorize(actor, ADMIN_ONLY)
    if target_id == actor.id:
        raise SelfModificationError("Cannot change your own role")
    if not is_valid_role(role):
        raise InvalidRoleError("Invalid role")

    changed = compare_and_set(
        User,
        target_id,
        expected={},
        values={"role": role, "updated_at": utcnow()},
    )
    if not changed:
        db.session.rollback()
        raise UserNotFoundError("User not found")

    log_security_event(
        user_id=actor.id,
        event_type="ROLE_CHANGED",
        success=True,
        resource=f"/api/admin/users/{target_id}/role",
        action="PUT",
        reason=f"Role set to {role}",
        commit=False,
    )
    db.session.commit()
    return get_user(target_id)


def remove_user(actor: Identity, target_id: int) -> dict:
    """
    Delete an account and every transaction it owns.

    Transactions the account reviewed stay, with the reviewer cleared.
    All of it is one database transaction: a missing account rolls back the
    whole removal.

    Returns counts of deleted rows.
    """
    authorize(actor, ADMIN_ONLY)
    if target_id == actor.id:
        raise SelfModificationError("Cannot delete your own account")

    deleted_transactions = (
        db.session.query(Transaction)
        .filter(Transaction.customer_id == target_id)
        .delete(synchronize_session=False)
    )
    db.session.query(Transaction).filter(
        Transaction.reviewed_by_id == target_id
    ).update({"reviewed_by_id": None}, synchronize_session=False)

    deleted_users = (
        db.session.query(User)
        .filter(User.id == target_id)
        .delete(synchronize_session=False)
    )
    if deleted_users != 1:
        db.session.rollback()
        raise UserNotFoundError("User not found")

    log_security_event(
        user_id=actor.id,
        event_type="USER_DELETED",
        success=True,
        resource=f"/api/admin/users/{target_id}",
        action="DELETE",
        reason=f"Deleted account and {deleted_transactions} transaction(s)",
        commit=False,
    )
    db.session.commit()
    # Bulk deletes bypass the identity map
    db.session.expire_all()

    return {"userId": target_id, "deletedTransactions": deleted_transactions}


def update_profile(actor: Identity, target_id: int, fields: dict) -> User:
    """
    Update name, email, password and (admins only) role.

    - A customer may update only its own account and never its role
    - An admin may update any account, and change any role but its own
    - Email stays unique; a new password is re-hashed

    Already-issued tokens stay valid, including after a password change.
    """
    authorize(actor, frozenset({ADMIN, CUSTOMER}))

    if actor.role == CUSTOMER:
        if target_id != actor.id:
            raise PermissionDeniedError("Access denied: You can only update your own account")
        if "role" in fields:
            raise PermissionDeniedError("Access denied: Customers cannot change roles")
    elif "role" in fields and target_id == actor.id:
        raise SelfModificationError("Cannot change your own role")

    if "role" in fields and not is_valid_role(fields["role"]):
        raise InvalidRoleError("Invalid role")

    user = get_user(target_id)

    if "email" in fields and fields["email"] != user.email:
        if email_taken(fields["email"], exclude_user_id=user.id):
            raise DuplicateEmailError("Email already registered")
        user.email = fields["email"]

    if "name" in fields:
        user.name = fields["name"]

    if "password" in fields:
        user.password_hash = hash_password(fields["password"])

    if "role" in fields:
        user.role = fields["role"]

    log_security_event(
        user_id=actor.id,
        event_type="USER_UPDATED",
        success=True,
        resource=f"/api/auth/update/{target_id}",
        action="PUT",
        reason=f"Updated: {', '.join(sorted(fields))}",
        commit=False,
    )
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmailError("Email already registered")
    return user
