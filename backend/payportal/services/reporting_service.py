# Overview: Service-layer operations for reporting; read-only aggregation over accounts and transactions.

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func

from payportal.extensions import db
from payportal.models import Transaction, User
from payportal.models.transactions import APPROVED, PENDING, REJECTED
from payportal.permissions import ADMIN, ADMIN_ONLY, CUSTOMER, EMPLOYEE
from payportal.services.permission_service import authorize
from payportal.services.token_service import Identity
from payportal.time_utils import utcnow


RECENT_ACTIVITY_DAYS = 30


def _percent(part: int, whole: int) -> int:
    return round(part * 100 / whole) if whole > 0 else 0


def dashboard_stats(actor: Identity) -> dict:
    """
    Admin dashboard counters.

    Status counts are reported in both vocabularies: approved/rejected and
    the admin view's completed/failed (same rows).
    """
    authorize(actor, ADMIN_ONLY)

    status_counts = dict(
        db.session.query(Transaction.status, func.count(Transaction.id))
        .group_by(Transaction.status)
        .all()
    )
    role_counts = dict(
        db.session.query(User.role, func.count(User.id))
        .group_by(User.role)
        .all()
    )

    total_transactions = sum(status_counts.values())
    total_users = sum(role_counts.values())
    pending = status_counts.get(PENDING, 0)
    approved = status_counts.get(APPROVED, 0)
    rejected = status_counts.get(REJECTED, 0)

    total_volume = (
        db.session.query(func.coalesce(func.sum(Transaction.amount), 0))
        .filter(Transaction.status == APPROVED)
        .scalar()
    )

    since = utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    recent_transactions = (
        db.session.query(func.count(Transaction.id))
        .filter(Transaction.created_at >= since)
        .scalar()
    )
    new_users = (
        db.session.query(func.count(User.id))
        .filter(User.created_at >= since)
        .scalar()
    )

    return {
        "totalUsers": total_users,
        "totalTransactions": total_transactions,
        "pendingTransactions": pending,
        "approvedTransactions": approved,
        "rejectedTransactions": rejected,
        "completedTransactions": approved,
        "failedTransactions": rejected,
        "customerCount": role_counts.get(CUSTOMER, 0),
        "employeeCount": role_counts.get(EMPLOYEE, 0),
        "adminCount": role_counts.get(ADMIN, 0),
        "totalVolume": round(float(total_volume or 0), 2),
        "recentTransactionsCount": recent_transactions,
        "newUsersCount": new_users,
        "successRate": _percent(approved, total_transactions),
        "pendingRate": _percent(pending, total_transactions),
    }
