# Overview: Flask API routes for expenses operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import expense_service
from ..validation import parse_date_value
from ..decorators import require_auth, require_permission
from .errors import json_error


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


def expense_filters() -> dict:
    return {
        "start_date": parse_date_value(request.args.get("start_date"), "start_date"),
        "end_date": parse_date_value(request.args.get("end_date"), "end_date"),
        "expense_type": request.args.get("expense_type") or None,
    }


@expenses_bp.get("")
@require_auth
@require_permission("expenses", "view")
def list_expenses_route():
    try:
        expenses = expense_service.list_expenses(g.owner_id, **expense_filters())
        return jsonify({"expenses": [e.to_dict() for e in expenses], "count": len(expenses)})
    except Exception as exc:
        return json_error(exc, "Failed to list expenses")


@expenses_bp.get("/summary")
@require_auth
@require_permission("expenses", "view")
def expense_summary_route():
    try:
        return jsonify(expense_service.expense_summary(g.owner_id, **expense_filters()))
    except Exception as exc:
        return json_error(exc, "Failed to summarize expenses")


@expenses_bp.get("/types")
@require_auth
@require_permission("expenses", "view")
def expense_types_route():
    return jsonify({"expense_types": list(expense_service.EXPENSE_TYPES)})


@expenses_bp.post("")
@require_auth
@require_permission("expenses", "create")
def create_expense_route():
    """
    Request body:
    {
        "expense_type": "Rent",
        "amount_cents": 5000000,
        "expense_date": "2024-05-01",
        "description": "May rent"  (optional)
    }
    """
    try:
        expense = expense_service.create_expense(
            g.owner_id, g.current_user.id, request.get_json(silent=True)
        )
        return jsonify({"expense": expense.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "Failed to create expense")


@expenses_bp.patch("/<int:expense_id>")
@require_auth
@require_permission("expenses", "edit")
def update_expense_route(expense_id: int):
    try:
        expense = expense_service.update_expense(g.owner_id, expense_id, request.get_json(silent=True))
        return jsonify({"expense": expense.to_dict()})
    except Exception as exc:
        return json_error(exc, "Failed to update expense")


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("expenses", "delete")
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(g.owner_id, expense_id)
        return jsonify({"message": "Expense deleted"})
    except Exception as exc:
        return json_error(exc, "Failed to delete expense")
