# Overview: Flask API routes for the employee review queue; same state machine as /api/transactions.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_roles
from ..responses import DOMAIN_ERRORS, internal_error, json_error
from ..services import transaction_service
from ..validation import validate_status_payload


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("/transactions")
@require_auth
@require_roles
def list_transactions():
    """Review queue: every transaction, newest first."""
    try:
        transactions = transaction_service.list_all(g.identity)
        return jsonify({
            "transactions": [t.to_dict(include_parties=True) for t in transactions],
            "count": len(transactions),
        }), 200

    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        return internal_error("Failed to list review queue")


@employees_bp.patch("/transactions/<int:transaction_id>/status")
@require_auth
@require_roles
def update_transaction_status(transaction_id: int):
    """Approve or reject; only pending transactions can be reviewed."""
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
        return internal_error("Failed to review transaction")
