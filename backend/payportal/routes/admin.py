# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for accounts, transactions and the dashboard.

Provides endpoints for:
- Dashboard statistics
- Account directory (list, get, create, change role, delete)
- Transaction view in the admin status vocabulary (list with summary, get, review)

All endpoints require an admin token. Self-protection: an admin cannot change
its own role or delete its own account.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..responses import DOMAIN_ERRORS, error_response, internal_error, json_error
from ..services import reporting_service, transaction_service, user_service
from ..validation import validate_account_payload, validate_role_payload, validate_status_payload


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# DASHBOARD
# =============================================================================

@admin_bp.get("/dashboard/stats")
@require_auth
@require_roles
def dashboard_stats():
    try:
        return jsonify(reporting_service.dashboard_stats(g.identity)), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to fetch dashboard statistics")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_roles
def list_users():
    """
    List accounts.

    Query params:
    - search: str - substring of name or email
    - role: customer | employee | admin
    - sortBy: createdAt (default) | updatedAt | name | email | role
    - sortOrder: asc | desc (default)
    - page: int (default 1)
    - limit: int (default 50, max 100)
    """
    try:
        result = user_service.list_users(
            g.identity,
            search=request.args.get("search"),
            role=request.args.get("role"),
            sort_by=request.args.get("sortBy", "createdAt"),
            sort_order=request.args.get("sortOrder", "desc"),
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", user_service.DEFAULT_PAGE_SIZE, type=int),
        )
        return jsonify(result), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to list users")


@admin_bp.get("/users/<int:user_id>")
@require_auth
@require_roles
def get_user(user_id: int):
    """Get an account with its ten most recent transactions."""
    try:
        return jsonify({"user": user_service.get_user_detail(g.identity, user_id)}), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to fetch user")


@admin_bp.post("/users")
@require_auth
@require_roles
def create_user():
    """
    Create an account with any role.

    Request body: {name, email, password, role?} (same rules as registration)
    """
    try:
        fields = validate_account_payload(request.get_json(silent=True))
        user = user_service.create_user(g.identity, fields)
        return jsonify({
            "message": "User created successfully",
            "user": user.to_dict(),
        }), 201

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to create user")


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_roles
def update_user_role(user_id: int):
    """Change another account's role. Request body: {role}"""
    try:
        fields = validate_role_payload(request.get_json(silent=True))
        user = user_service.set_role(g.identity, user_id, fields["role"])
        return jsonify({
            "message": "User role updated successfully",
            "user": user.to_dict(),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to update user role")


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_roles
def delete_user(user_id: int):
    """Delete another account and the transactions it owns."""
    try:
        result = user_service.remove_user(g.identity, user_id)
        return jsonify({
            "message": "User and associated transactions deleted successfully",
            **result,
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to delete user")


# =============================================================================
# TRANSACTION MANAGEMENT
# =============================================================================

@admin_bp.get("/transactions")
@require_auth
@require_roles
def list_transactions():
    """
    List transactions with filters and an amount summary.

    Query params:
    - status: pending | approved | rejected | completed | failed | cancelled | under_review | all
    - paymentMethod: bank_transfer | credit_card | debit_card | paypal
    - startDate / endDate: ISO date or datetime (endDate date covers the whole day)
    - minAmount / maxAmount: decimal
    - sortBy: createdAt (default) | updatedAt | amount | status
    - sortOrder: asc | desc (default)
    - page / limit: pagination (default 1 / 50, max 100)
    """
    try:
        result = transaction_service.query_transactions(
            g.identity,
            status=request.args.get("status"),
            payment_method=request.args.get("paymentMethod"),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
            min_amount=request.args.get("minAmount"),
            max_amount=request.args.get("maxAmount"),
            sort_by=request.args.get("sortBy", "createdAt"),
            sort_order=request.args.get("sortOrder", "desc"),
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", transaction_service.DEFAULT_PAGE_SIZE, type=int),
        )
        return jsonify(result), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except ValueError as e:
        return error_response(str(e), 400)
    except Exception:
        return internal_error("Failed to list transactions")


@admin_bp.get("/transactions/<int:transaction_id>")
@require_auth
@require_roles
def get_transaction(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(g.identity, transaction_id)
        return jsonify({
            "transaction": transaction.to_dict(include_parties=True, admin_view=True),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to fetch transaction")


@admin_bp.put("/transactions/<int:transaction_id>/status")
@require_auth
@require_roles
def update_transaction_status(transaction_id: int):
    """
    Resolve a pending transaction using either status vocabulary.

    completed -> approved, failed / cancelled -> rejected.
    pending / under_review are not valid targets.
    Request body: {"status": "...", "adminNotes": "..."}
    """
    try:
        fields = validate_status_payload(request.get_json(silent=True))
        transaction = transaction_service.admin_transition(
            g.identity, transaction_id, fields["status"], notes=fields.get("notes"),
        )
        return jsonify({
            "message": "Transaction status updated successfully",
            "transaction": transaction.to_dict(include_parties=True, admin_view=True),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to update transaction status")
