# Overview: Flask API routes for CSV downloads of credits, expenses, customers and payments.

"""
CSV Export Routes

Each export takes the same filters as its JSON listing and answers with
a text/csv attachment named after the owner's local date.

SECURITY:
- Every export needs view on the feature it exports
"""

from flask import Blueprint, Response, request, g

from ..services import credit_service
from ..services import csv_service
from ..services import expense_service
from ..services import payment_service
from ..decorators import require_auth, require_permission
from .errors import json_error
from .expenses import expense_filters


exports_bp = Blueprint("exports", __name__, url_prefix="/api/exports")

# Upper bound on payment rows in one download
MAX_PAYMENT_ROWS = 10000


def _attachment(columns, rows, prefix: str) -> Response:
    filename = csv_service.export_filename(prefix, g.session_context.today())
    return Response(
        csv_service.render_csv(columns, rows),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@exports_bp.get("/credits")
@require_auth
@require_permission("credits", "view")
def export_credits_route():
    """Query params as GET /api/credits."""
    try:
        rows = credit_service.list_credits(
            g.owner_id,
            credit_type=request.args.get("credit_type"),
            search=request.args.get("search"),
            status=request.args.get("status"),
            today=g.session_context.today(),
        )
        return _attachment(csv_service.CREDIT_COLUMNS, rows, "credits")
    except Exception as exc:
        return json_error(exc, "Failed to export credits")


@exports_bp.get("/expenses")
@require_auth
@require_permission("expenses", "view")
def export_expenses_route():
    """Query params as GET /api/expenses."""
    try:
        expenses = expense_service.list_expenses(g.owner_id, **expense_filters())
        return _attachment(csv_service.EXPENSE_COLUMNS, [e.to_dict() for e in expenses], "expenses")
    except Exception as exc:
        return json_error(exc, "Failed to export expenses")


@exports_bp.get("/customers")
@require_auth
@require_permission("customers", "view")
def export_customers_route():
    try:
        rows = csv_service.customer_balances(g.owner_id)
        return _attachment(csv_service.CUSTOMER_COLUMNS, rows, "customers")
    except Exception as exc:
        return json_error(exc, "Failed to export customers")


@exports_bp.get("/payments")
@require_auth
@require_permission("receive_payment", "view")
def export_payments_route():
    """Query param: customer_name (optional)."""
    try:
        entries = payment_service.list_payment_ledger(
            g.owner_id,
            customer_name=request.args.get("customer_name"),
            limit=MAX_PAYMENT_ROWS,
        )
        return _attachment(csv_service.PAYMENT_COLUMNS, csv_service.payment_rows(entries), "payments")
    except Exception as exc:
        return json_error(exc, "Failed to export payments")
