# Overview: Flask API routes for transactions operations; parses input and returns JSON responses.

"""
Transaction API Routes

WHY: Customers submit international transfer requests; employees and admins
review them. Role gates come from ROUTE_ROLES; ownership and the
pending -> approved | rejected rule are enforced by transaction_service.

SECURITY:
- Customers create and list only their own transactions
- Customers read another customer's transaction -> 403
- Review (status change) by employee/admin only, once per transaction
- Delete by admin only
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..responses import DOMAIN_ERRORS, internal_error, json_error
from ..services import transaction_service
from ..validation import validate_status_payload, validate_transaction_payload


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
@require_roles
def create_transaction():
    """
    Create a transfer request (customer).

    Request body:
    {
        "swiftCode": "BOFAUS3N",        (required, 8-11 uppercase alphanumeric)
        "amount": 100.00,               (required, > 0, max 2 decimals)
        "recipientName": "Bob",         (optional)
        "recipientBank": "Bank of X",   (optional)
        "description": "Rent",          (optional)
        "paymentMethod": "bank_transfer" (optional)
    }

    Returns:
        201: Transaction created (status pending)
        400: Validation failed
        429: Creation limit reached
    """
    try:
        fields = validate_transaction_payload(request.get_json(silent=True))
        transaction = transaction_service.create_transaction(g.identity, fields)
        return jsonify({
            "message": "Transaction created successfully",
            "transaction": transaction.to_dict(include_parties=True),
        }), 201

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to create transaction")


@transactions_bp.get("/my")
@require_auth
@require_roles
def list_my_transactions():
    """The caller's own transactions, newest first."""
    try:
        transactions = transaction_service.list_own(g.identity)
        return jsonify({
            "transactions": [t.to_dict() for t in transactions],
            "count": len(transactions),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to list own transactions")


@transactions_bp.get("")
@require_auth
@require_roles
def list_transactions():
    """All transactions with customer and reviewer, newest first (employee/admin)."""
    try:
        transactions = transaction_service.list_all(g.identity)
        return jsonify({
            "transactions": [t.to_dict(include_parties=True) for t in transactions],
            "count": len(transactions),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to list transactions")


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_roles
def get_transaction(transaction_id: int):
    """One transaction; customers only their own."""
    try:
        transaction = transaction_service.get_transaction(g.identity, transaction_id)
        return jsonify({"transaction": transaction.to_dict(include_parties=True)}), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to fetch transaction")


@transactions_bp.put("/<int:transaction_id>/status")
@require_auth
@require_roles
def update_transaction_status(transaction_id: int):
    """
    Approve or reject a pending transaction (employee/admin).

    Request body: {"status": "approved" | "rejected", "adminNotes": "..."}

    Returns:
        200: Updated transaction with customer and reviewer
        400: Invalid status, or transaction no longer pending
        404: Transaction not found
    """
    try:
        fields = validate_status_payload(request.get_json(silent=True))
        transaction = transaction_service.transition(
            g.identity, transaction_id, fields["status"], notes=fields.get("notes"),
        )
        return jsonify({
            "message": f"Transaction {transaction.status} successfully",
            "transaction": transaction.to_dict(include_parties=True),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to update transaction status")


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_roles
def delete_transaction(transaction_id: int):
    """Remove a transaction in any state (admin)."""
    try:
        transaction_service.delete_transaction(g.identity, transaction_id)
        return jsonify({"message": "Transaction deleted successfully"}), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to delete transaction")
