# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Invoice (Sales) API Routes

SECURITY:
- invoice:create to issue an invoice
- sales:view to read invoices, sales:delete to remove one
"""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..validation import parse_date_value
from ..decorators import require_auth, require_permission
from .errors import json_error


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("invoice", "create")
def create_invoice_route():
    """
    Issue an invoice.

    Request body:
    {
        "customer_name": "Ali Khan",  (optional, walk-in when blank)
        "customer_phone": "03001234567",  (optional)
        "items": [{"description": "Rice 5kg", "quantity": 2, "unit_price_cents": 120000}],
        "discount_cents": 0,
        "paid_amount_cents": 100000,  (defaults to the final amount)
        "payment_method": "cash",
        "due_date": "2024-06-01"  (for the unpaid remainder)
    }

    Returns:
        201: invoice with items
        400: invalid items, discount or paid amount
    """
    try:
        sale = sales_service.create_invoice(
            g.owner_id,
            g.current_user.id,
            request.get_json(silent=True),
            today=g.session_context.today(),
        )
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201
    except Exception as exc:
        return json_error(exc, "Failed to create invoice")


@sales_bp.get("")
@require_auth
@require_permission("sales", "view")
def list_sales_route():
    """Query params: customer_name, payment_status, start_date, end_date, limit."""
    try:
        limit = request.args.get("limit", 100, type=int)
        sales = sales_service.list_sales(
            g.owner_id,
            customer_name=request.args.get("customer_name"),
            payment_status=request.args.get("payment_status"),
            start_date=parse_date_value(request.args.get("start_date"), "start_date"),
            end_date=parse_date_value(request.args.get("end_date"), "end_date"),
            limit=max(1, min(limit, 500)),
        )
        return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)})
    except Exception as exc:
        return json_error(exc, "Failed to list sales")


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("sales", "view")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.owner_id, sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)})
    except Exception as exc:
        return json_error(exc, "Failed to load sale")


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("sales", "delete")
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale(g.owner_id, sale_id)
        return jsonify({"message": "Sale deleted"})
    except Exception as exc:
        return json_error(exc, "Failed to delete sale")


@sales_bp.get("/customers/<string:customer_name>/outstanding")
@require_auth
@require_permission("sales", "view")
def outstanding_invoices_route(customer_name: str):
    """Invoices the customer still owes on, oldest first, plus totals."""
    try:
        sales = sales_service.outstanding_invoices(g.owner_id, customer_name)
        return jsonify({
            "customer_name": customer_name,
            "invoices": [s.to_dict() for s in sales],
            "summary": sales_service.outstanding_summary(sales),
        })
    except Exception as exc:
        return json_error(exc, "Failed to load outstanding invoices")
