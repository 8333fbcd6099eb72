# Overview: Service-layer operations for transactions; creation, review lifecycle and listings.

"""
Transaction Review State Machine

LIFECYCLE:
    pending -> approved
    pending -> rejected

WHY: A transfer request is created by its customer and resolved exactly once
by an employee or admin, who becomes the reviewer of record. Resolved
transactions are never re-reviewed.

CONCURRENCY:
- transition() is one conditional UPDATE ... WHERE id = ? AND status = 'pending'.
  When two reviewers race, the database applies the first and the second
  matches no row and gets InvalidTransitionError. No read-then-write window.

ACCESS:
- create: customer only
- list own: customer only, newest first
- list all / transition: employee or admin
- get one: any role; customers only their own
- delete: admin only, no state restriction
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy import func

from ..extensions import db
from ..models import Transaction
from ..models.transactions import (
    ADMIN_STATUS_TO_STATUS,
    PAYMENT_METHODS,
    PENDING,
    REVIEW_OUTCOMES,
    TRANSACTION_STATUSES,
)
from ..permissions import ADMIN_ONLY, ANY_ROLE, CUSTOMER, CUSTOMER_ONLY, STAFF
from ..time_utils import parse_iso_datetime, utcnow
from .concurrency import compare_and_set
from .permission_service import PermissionDeniedError, authorize, log_security_event
from .throttle_service import check_transaction_create_allowed
from .token_service import Identity


NOT_PROVIDED = "Not provided"
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

TRANSACTION_SORT_COLUMNS = {
    "createdAt": Transaction.created_at,
    "updatedAt": Transaction.updated_at,
    "amount": Transaction.amount,
    "status": Transaction.status,
}


class TransactionNotFoundError(Exception):
    """Raised when no transaction has the requested id."""
    pass


class InvalidTransitionError(Exception):
    """Raised for a target status other than approved/rejected, or a transaction no longer pending."""
    pass


class OwnershipError(PermissionDeniedError):
    """Raised when a customer touches a transaction it does not own."""
    pass


def _newest_first(query):
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc())


def create_transaction(actor: Identity, fields: dict) -> Transaction:
    """
    Create a pending transfer request owned by actor.

    fields is the output of validate_transaction_payload. Missing optional
    text gets a placeholder; status is always pending with no reviewer.

    Raises:
        PermissionDeniedError: actor is not a customer
        RateLimitedError: customer exceeded the creation limit
    """
    authorize(actor, CUSTOMER_ONLY)
    check_transaction_create_allowed(actor.id)

    swift_code = fields["swift_code"]
    transaction = Transaction(
        customer_id=actor.id,
        swift_code=swift_code,
        amount=fields["amount"],
        recipient_name=fields.get("recipient_name") or NOT_PROVIDED,
        recipient_bank=fields.get("recipient_bank") or NOT_PROVIDED,
        description=fields.get("description") or f"Payment transfer {swift_code}",
        payment_method=fields["payment_method"],
        status=PENDING,
        reviewed_by_id=None,
    )
    db.session.add(transaction)
    db.session.commit()
    return transaction


def list_own(actor: Identity) -> list[Transaction]:
    """Transactions owned by actor, newest first."""
    authorize(actor, CUSTOMER_ONLY)
    query = db.session.query(Transaction).filter(Transaction.customer_id == actor.id)
    return _newest_first(query).all()


def list_all(actor: Identity) -> list[Transaction]:
    """Every transaction, newest first (employee/admin)."""
    authorize(actor, STAFF)
    return _newest_first(db.session.query(Transaction)).all()


def get_transaction(actor: Identity, transaction_id: int) -> Transaction:
    """
    Read one transaction.

    Raises TransactionNotFoundError when absent and OwnershipError when a
    customer asks for someone else's.
    """
    authorize(actor, ANY_ROLE)
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise TransactionNotFoundError("Transaction not found")
    if actor.role == CUSTOMER and transaction.customer_id != actor.id:
        raise OwnershipError("Access denied")
    return transaction


def transition(
    actor: Identity,
    transaction_id: int,
    new_status: str,
    notes: str | None = None,
) -> Transaction:
    """
    Resolve a pending transaction as approved or rejected.

    Records actor as reviewer. Returns the updated transaction; its customer
    and reviewer relationships load on access.

    Raises:
        PermissionDeniedError: actor is a customer
        InvalidTransitionError: new_status not approved/rejected, or the
            transaction is no longer pending (including a lost race)
        TransactionNotFoundError: no such transaction
    """
    authorize(actor, STAFF)
    if new_status not in REVIEW_OUTCOMES:
        raise InvalidTransitionError(
            f"Invalid status. Must be one of: {', '.join(REVIEW_OUTCOMES)}"
        )

    now = utcnow()
    values = {
        "status": new_status,
        "reviewed_by_id": actor.id,
        "reviewed_at": now,
        "updated_at": now,
    }
    if notes is not None:
        values["review_notes"] = notes

    changed = compare_and_set(
        Transaction,
        transaction_id,
        expected={"status": PENDING},
        values=values,
    )
    if not changed:
        db.session.rollback()
        exists = db.session.query(Transaction.id).filter(Transaction.id == transaction_id).first()
        if exists is None:
            raise TransactionNotFoundError("Transaction not found")
        raise InvalidTransitionError("Only pending transactions can be updated")

    log_security_event(
        user_id=actor.id,
        event_type="TRANSACTION_REVIEWED",
        success=True,
        resource=f"/api/transactions/{transaction_id}",
        action="REVIEW",
        reason=f"Status set to {new_status}",
        commit=False,
    )
    db.session.commit()
    return db.session.get(Transaction, transaction_id)


def to_canonical_status(status: str | None) -> str | None:
    """Map either vocabulary (canonical or admin view) to the canonical status."""
    if status in TRANSACTION_STATUSES:
        return status
    return ADMIN_STATUS_TO_STATUS.get(status)


def admin_transition(
    actor: Identity,
    transaction_id: int,
    status: str,
    notes: str | None = None,
) -> Transaction:
    """
    transition() for the admin view, which accepts either vocabulary.

    completed -> approved, failed/cancelled -> rejected. A target that maps
    to pending (pending, under_review) is an InvalidTransitionError.
    cancelled does not round-trip: it is stored as rejected and reads back
    as adminStatus "failed".
    """
    authorize(actor, ADMIN_ONLY)
    canonical = to_canonical_status(status)
    if canonical is None or canonical == PENDING:
        raise InvalidTransitionError(
            "Invalid status. Must be one of: approved, rejected, completed, failed, cancelled"
        )
    return transition(actor, transaction_id, canonical, notes=notes)


def delete_transaction(actor: Identity, transaction_id: int) -> None:
    """Unconditional removal by an admin. Accounts are untouched."""
    authorize(actor, ADMIN_ONLY)
    deleted = (
        db.session.query(Transaction)
        .filter(Transaction.id == transaction_id)
        .delete(synchronize_session=False)
    )
    if deleted != 1:
        db.session.rollback()
        raise TransactionNotFoundError("Transaction not found")

    log_security_event(
        user_id=actor.id,
        event_type="TRANSACTION_DELETED",
        success=True,
        resource=f"/api/transactions/{transaction_id}",
        action="DELETE",
        commit=False,
    )
    db.session.commit()
    db.session.expire_all()


def _parse_decimal(raw: str | None) -> Decimal | None:
    if raw is None or raw == "":
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(f"Invalid amount filter: {raw}")


def query_transactions(
    actor: Identity,
    *,
    status: str | None = None,
    payment_method: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    min_amount: str | None = None,
    max_amount: str | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int | None = 1,
    limit: int | None = DEFAULT_PAGE_SIZE,
) -> dict:
    """
    Admin transaction listing with filters, pagination and an amount summary.

    status accepts either vocabulary ("all" or empty means no filter); admin
    values that share a canonical status (failed, cancelled) select the
    same rows. end_date without a time covers the whole day.

    Raises ValueError for unparseable dates or amounts and unknown statuses.
    """
    authorize(actor, ADMIN_ONLY)

    filters = []
    if status and status != "all":
        canonical = to_canonical_status(status)
        if canonical is None:
            raise ValueError(f"Unknown status filter: {status}")
        filters.append(Transaction.status == canonical)

    if payment_method:
        if payment_method not in PAYMENT_METHODS:
            raise ValueError(f"Unknown payment method: {payment_method}")
        filters.append(Transaction.payment_method == payment_method)

    start_dt = parse_iso_datetime(start_date) if start_date else None
    end_dt = parse_iso_datetime(end_date, end_of_day=True) if end_date else None
    if start_dt is not None:
        filters.append(Transaction.created_at >= start_dt)
    if end_dt is not None:
        filters.append(Transaction.created_at <= end_dt)

    min_value = _parse_decimal(min_amount)
    max_value = _parse_decimal(max_amount)
    if min_value is not None:
        filters.append(Transaction.amount >= min_value)
    if max_value is not None:
        filters.append(Transaction.amount <= max_value)

    query = db.session.query(Transaction).filter(*filters)

    column = TRANSACTION_SORT_COLUMNS.get(sort_by, Transaction.created_at)
    if sort_order == "asc":
        query = query.order_by(column.asc(), Transaction.id.asc())
    else:
        query = query.order_by(column.desc(), Transaction.id.desc())

    limit = max(1, min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
    page = max(page or 1, 1)

    total = query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    transactions = query.offset((page - 1) * limit).limit(limit).all()

    summary_row = db.session.query(
        func.coalesce(func.sum(Transaction.amount), 0),
        func.avg(Transaction.amount),
        func.min(Transaction.amount),
        func.max(Transaction.amount),
    ).filter(*filters).one()

    def _money(value):
        return round(float(value), 2) if value is not None else 0

    return {
        "transactions": [
            t.to_dict(include_parties=True, admin_view=True) for t in transactions
        ],
        "pagination": {
            "currentPage": page,
            "limit": limit,
            "totalPages": total_pages,
            "totalTransactions": total,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
        "summary": {
            "totalAmount": _money(summary_row[0]),
            "avgAmount": _money(summary_row[1]),
            "minAmount": _money(summary_row[2]),
            "maxAmount": _money(summary_row[3]),
        },
    }
