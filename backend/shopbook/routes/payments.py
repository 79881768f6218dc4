# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Receive Payment API Routes

WHY: A customer hands over one amount that settles several invoices.

DESIGN:
- preview runs the allocator without writing anything
- receive updates invoices, their linked credits and writes one
  payment_ledger row in a single transaction
- history is the customer's invoice ledger with a running balance

SECURITY:
- receive_payment:create for preview, receive and CSV import
- receive_payment:view for ledger and history reads
"""

import csv

from flask import Blueprint, request, jsonify, g

from ..services import csv_service
from ..services import payment_service
from ..services import ledger_service
from ..decorators import require_auth, require_permission
from .errors import json_error


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/preview")
@require_auth
@require_permission("receive_payment", "create")
def preview_payment_route():
    """
    Show how a payment would be split across open invoices.

    Request body: same as /receive. Nothing is written.
    """
    try:
        return jsonify(payment_service.preview_payment(g.owner_id, request.get_json(silent=True)))
    except Exception as exc:
        return json_error(exc, "Failed to preview payment")


@payments_bp.post("/receive")
@require_auth
@require_permission("receive_payment", "create")
def receive_payment_route():
    """
    Apply a received payment.

    Request body:
    {
        "customer_name": "Ali Khan",
        "amount_cents": 250000,
        "mode": "auto_adjust",  (or "specific_invoice")
        "sale_id": 12,  (required for specific_invoice)
        "payment_method": "cash",
        "payment_date": "2024-05-03T10:00:00Z",  (optional)
        "notes": "..."  (optional)
    }

    Returns:
        201: ledger entry, allocations, refreshed invoices
        400: invalid request, or no unpaid invoices for the customer
        409: invoices changed concurrently and retries ran out
    """
    try:
        result = payment_service.receive_payment(
            g.owner_id,
            g.current_user.id,
            request.get_json(silent=True),
            today=g.session_context.today(),
        )
        return jsonify(result), 201
    except Exception as exc:
        return json_error(exc, "Failed to receive payment")


@payments_bp.get("/ledger")
@require_auth
@require_permission("receive_payment", "view")
def payment_ledger_route():
    """Recent payment_ledger rows. Query params: customer_name, limit (default 10)."""
    try:
        limit = request.args.get("limit", 10, type=int)
        entries = payment_service.list_payment_ledger(
            g.owner_id,
            customer_name=request.args.get("customer_name"),
            limit=max(1, min(limit, 200)),
        )
        return jsonify({"entries": [e.to_dict() for e in entries], "count": len(entries)})
    except Exception as exc:
        return json_error(exc, "Failed to list payment ledger")


@payments_bp.get("/customers/<string:customer_name>/history")
@require_auth
@require_permission("receive_payment", "view")
def payment_history_route(customer_name: str):
    """Credit given on invoices and payments received, newest first, with running balance."""
    try:
        rows = ledger_service.invoice_ledger(g.owner_id, customer_name)
        return jsonify({
            "customer_name": customer_name,
            "entries": [row.to_dict() for row in rows],
            "balance_cents": rows[0].balance_after_cents if rows else 0,
        })
    except Exception as exc:
        return json_error(exc, "Failed to build payment history")


@payments_bp.post("/import")
@require_auth
@require_permission("receive_payment", "create")
def import_payments_route():
    """
    Bulk-insert payment_ledger rows from a CSV upload or a JSON row list.

    multipart/form-data: file=<payments.csv> with headers Date, Customer
    Name, Customer Phone, Amount (rupees), Payment Method, Notes.
    JSON: {"rows": [{"customer_name": ..., "amount": "1500.00", ...}]}

    Imported rows are recorded against the customer without touching
    any invoice (details is empty).

    Returns:
        201: imported count, skipped rows with their errors, new entries
        400: unreadable file or no valid rows
    """
    if "file" in request.files:
        upload = request.files["file"]
        if not (upload.filename or "").lower().endswith(".csv"):
            return jsonify({"error": "Unsupported file format"}), 400
        try:
            rows = csv_service.read_csv(upload.stream.read().decode("utf-8-sig"))
        except (UnicodeDecodeError, csv.Error):
            return jsonify({"error": "Failed to parse upload"}), 400
    else:
        data = request.get_json(silent=True) or {}
        rows = data.get("rows")
        if not isinstance(rows, list):
            return jsonify({"error": "file or rows is required"}), 400

    try:
        result = csv_service.import_payments(
            g.owner_id,
            g.current_user.id,
            rows,
            today=g.session_context.today(),
        )
        return jsonify(result), 201
    except Exception as exc:
        return json_error(exc, "Failed to import payments")
