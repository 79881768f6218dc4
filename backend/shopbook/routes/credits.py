# Overview: Flask API routes for credits operations; parses input and returns JSON responses.

"""
Credit Book API Routes

WHY: The shop keeps a running book of money customers owe it ("given"),
money it owes others ("taken") and cash handed out ("cash").

DESIGN:
- Remaining balance and status are recomputed on every read, using the
  owner's local date for the overdue check
- A repayment can never exceed the remaining balance
- Every repayment leaves a CreditTransaction row

SECURITY:
- credits:view for reads, credits:create/edit/delete for writes
- Recording a repayment counts as editing the credit
"""

from flask import Blueprint, request, jsonify, g

from ..services import credit_service
from ..services import ledger_service
from ..decorators import require_auth, require_permission
from .errors import json_error


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


# =============================================================================
# CREDIT QUERIES
# =============================================================================

@credits_bp.get("")
@require_auth
@require_permission("credits", "view")
def list_credits_route():
    """
    List credits, newest first.

    Query params: credit_type (given|taken|cash), search (customer name
    fragment), status (pending|partial|paid|overdue).
    """
    try:
        credits = credit_service.list_credits(
            g.owner_id,
            credit_type=request.args.get("credit_type"),
            search=request.args.get("search"),
            status=request.args.get("status"),
            today=g.session_context.today(),
        )
        return jsonify({"credits": credits, "count": len(credits)})
    except Exception as exc:
        return json_error(exc, "Failed to list credits")


@credits_bp.get("/summary")
@require_auth
@require_permission("credits", "view")
def credit_summary_route():
    try:
        return jsonify(credit_service.credit_summary(g.owner_id, today=g.session_context.today()))
    except Exception as exc:
        return json_error(exc, "Failed to summarize credits")


@credits_bp.get("/<int:credit_id>")
@require_auth
@require_permission("credits", "view")
def get_credit_route(credit_id: int):
    try:
        credit = credit_service.get_credit(g.owner_id, credit_id)
        return jsonify({"credit": credit_service.serialize_credit(credit, g.session_context.today())})
    except Exception as exc:
        return json_error(exc, "Failed to load credit")


@credits_bp.get("/<int:credit_id>/transactions")
@require_auth
@require_permission("credits", "view")
def list_credit_transactions_route(credit_id: int):
    try:
        transactions = credit_service.list_transactions(g.owner_id, credit_id)
        return jsonify({"transactions": [t.to_dict() for t in transactions], "count": len(transactions)})
    except Exception as exc:
        return json_error(exc, "Failed to list credit transactions")


@credits_bp.get("/customers/<string:customer_name>/ledger")
@require_auth
@require_permission("credits", "view")
def customer_credit_ledger_route(customer_name: str):
    """Running balance over a customer's credits and repayments, newest first."""
    try:
        rows = ledger_service.cash_credit_ledger(g.owner_id, customer_name)
        return jsonify({
            "customer_name": customer_name,
            "entries": [row.to_dict() for row in rows],
            "balance_cents": rows[0].balance_after_cents if rows else 0,
        })
    except Exception as exc:
        return json_error(exc, "Failed to build credit ledger")


# =============================================================================
# CREDIT WRITES
# =============================================================================

@credits_bp.post("")
@require_auth
@require_permission("credits", "create")
def create_credit_route():
    """
    Create a credit.

    Request body:
    {
        "customer_name": "Ali Khan",
        "customer_phone": "03001234567",  (optional)
        "credit_type": "given",
        "amount_cents": 150000,
        "credit_date": "2024-05-01",  (optional, defaults to now)
        "due_date": "2024-06-01",  (optional)
        "notes": "..."  (optional)
    }
    """
    try:
        today = g.session_context.today()
        credit = credit_service.create_credit(
            g.owner_id, g.current_user.id, request.get_json(silent=True), today=today
        )
        return jsonify({"credit": credit_service.serialize_credit(credit, today)}), 201
    except Exception as exc:
        return json_error(exc, "Failed to create credit")


@credits_bp.patch("/<int:credit_id>")
@require_auth
@require_permission("credits", "edit")
def update_credit_route(credit_id: int):
    try:
        today = g.session_context.today()
        credit = credit_service.update_credit(
            g.owner_id, credit_id, request.get_json(silent=True), today=today
        )
        return jsonify({"credit": credit_service.serialize_credit(credit, today)})
    except Exception as exc:
        return json_error(exc, "Failed to update credit")


@credits_bp.delete("/<int:credit_id>")
@require_auth
@require_permission("credits", "delete")
def delete_credit_route(credit_id: int):
    try:
        credit_service.delete_credit(g.owner_id, credit_id)
        return jsonify({"message": "Credit deleted"})
    except Exception as exc:
        return json_error(exc, "Failed to delete credit")


@credits_bp.post("/<int:credit_id>/payments")
@require_auth
@require_permission("credits", "edit")
def record_credit_payment_route(credit_id: int):
    """
    Record a repayment.

    Request body: {"amount_cents": 5000, "payment_date": "...", "notes": "..."}

    Returns:
        201: updated credit and the new transaction
        400: bad amount, or amount above the remaining balance
        404: credit not found
        409: concurrent update kept failing
    """
    try:
        today = g.session_context.today()
        credit, txn = credit_service.record_payment(
            g.owner_id, credit_id, g.current_user.id, request.get_json(silent=True), today=today
        )
        return jsonify({
            "credit": credit_service.serialize_credit(credit, today),
            "transaction": txn.to_dict(),
        }), 201
    except Exception as exc:
        return json_error(exc, "Failed to record credit payment")
