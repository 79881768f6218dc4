# Overview: CSV export of the owner's books and bulk import of payment_ledger rows.

"""
CSV Export / Import Service

Exports render amounts in rupees ("1250.50") with human headers, one
column list per export. Imports read those same headers (or their
snake_case forms) back, so an exported payments file can be re-imported.

Payment import writes bare payment_ledger rows with empty details: the
money is recorded against the customer but not allocated to invoices.
Rows that fail validation are reported and skipped; the valid rows
commit together.
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, time
from typing import Any

from ..extensions import db
from ..models import Credit, PaymentLedgerEntry, CREDIT_TYPE_TAKEN
from ..validation import ValidationError
from . import customer_service
from .sales_service import parse_payment_method
from shopbook.time_utils import parse_iso_datetime, utcnow


class CsvImportError(ValidationError):
    """Raised when an uploaded file has no usable rows."""


NO_VALID_PAYMENTS = "No valid payments found in CSV"


def format_cents(value: int | None) -> str:
    if value is None:
        return ""
    sign = "-" if value < 0 else ""
    value = abs(value)
    return f"{sign}{value // 100}.{value % 100:02d}"


def _to_cents(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, int):
        return value * 100
    if isinstance(value, float):
        return int(round(value * 100))
    text = str(value).strip().replace("Rs.", "").replace(",", "").strip()
    if not text:
        return None
    return int(round(float(text) * 100))


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _header_key(header: str | None) -> str:
    return "_".join((header or "").strip().lower().split())


def _first(row: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def render_csv(columns: list[tuple], rows: list[dict]) -> str:
    """columns: (header, key[, formatter]) triples, in output order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([column[0] for column in columns])
    for row in rows:
        out = []
        for column in columns:
            value = row.get(column[1])
            if len(column) > 2:
                value = column[2](value)
            out.append("" if value is None else value)
        writer.writerow(out)
    return buffer.getvalue()


def read_csv(text: str) -> list[dict[str, str]]:
    """Rows keyed by snake_case header; blank lines dropped."""
    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for raw in reader:
        row = {_header_key(k): (v or "").strip() for k, v in raw.items() if k is not None}
        if any(row.values()):
            rows.append(row)
    return rows


# =============================================================================
# EXPORTS
# =============================================================================

CREDIT_COLUMNS = [
    ("Customer Name", "customer_name"),
    ("Customer Phone", "customer_phone"),
    ("Type", "credit_type"),
    ("Amount", "amount_cents", format_cents),
    ("Paid Amount", "paid_amount_cents", format_cents),
    ("Remaining Amount", "remaining_amount_cents", format_cents),
    ("Status", "status"),
    ("Due Date", "due_date"),
    ("Notes", "notes"),
    ("Created At", "created_at"),
]

EXPENSE_COLUMNS = [
    ("Date", "expense_date"),
    ("Type", "expense_type"),
    ("Description", "description"),
    ("Amount", "amount_cents", format_cents),
]

CUSTOMER_COLUMNS = [
    ("Customer Name", "customer_name"),
    ("Phone", "customer_phone"),
    ("Total Credit", "total_credit_cents", format_cents),
    ("Total Paid", "total_paid_cents", format_cents),
    ("Remaining Balance", "remaining_cents", format_cents),
]

PAYMENT_COLUMNS = [
    ("Date", "payment_date"),
    ("Customer Name", "customer_name"),
    ("Customer Phone", "customer_phone"),
    ("Amount", "payment_amount_cents", format_cents),
    ("Payment Method", "payment_method"),
    ("Notes", "notes"),
]


def customer_balances(owner_id: int) -> list[dict]:
    """
    Active customers with what they owe across given and cash credits.

    Credits the shop took are not part of a customer's balance.
    """
    totals: dict[str, dict[str, int]] = {}
    credits = db.session.query(Credit).filter(
        Credit.owner_id == owner_id,
        Credit.credit_type != CREDIT_TYPE_TAKEN,
    ).all()
    for credit in credits:
        bucket = totals.setdefault(
            customer_service.normalize_name(credit.customer_name),
            {"total_credit_cents": 0, "total_paid_cents": 0, "remaining_cents": 0},
        )
        bucket["total_credit_cents"] += credit.amount_cents
        bucket["total_paid_cents"] += credit.paid_amount_cents
        bucket["remaining_cents"] += credit.remaining_amount_cents

    rows = []
    for customer in customer_service.list_customers(owner_id):
        bucket = totals.get(customer.customer_name_normalized, {})
        rows.append({
            "customer_name": customer.customer_name,
            "customer_phone": customer.customer_phone,
            "total_credit_cents": bucket.get("total_credit_cents", 0),
            "total_paid_cents": bucket.get("total_paid_cents", 0),
            "remaining_cents": bucket.get("remaining_cents", 0),
        })
    return rows


def payment_rows(entries: list[PaymentLedgerEntry]) -> list[dict]:
    rows = []
    for entry in entries:
        data = entry.to_dict()
        data["payment_date"] = entry.payment_date.date().isoformat() if entry.payment_date else None
        rows.append(data)
    return rows


def export_filename(prefix: str, today: date) -> str:
    return f"{prefix}_{today.isoformat()}.csv"


# =============================================================================
# PAYMENT IMPORT
# =============================================================================

class PaymentsImportSchema:
    """Row schema for bulk payment_ledger imports."""

    def normalize_row(self, raw_row: dict[str, Any], *, today: date) -> dict[str, Any]:
        raw_row = {_header_key(k): v for k, v in raw_row.items()}
        payment_date = _to_text(_first(raw_row, "date", "payment_date"))
        return {
            "customer_name": customer_service.clean_name(_first(raw_row, "customer_name", "name") or ""),
            "customer_phone": _to_text(_first(raw_row, "customer_phone", "phone")),
            "amount": _first(raw_row, "amount", "payment_amount"),
            "payment_date": payment_date,
            "payment_method": _to_text(raw_row.get("payment_method")) or "cash",
            "notes": _to_text(raw_row.get("notes")),
            "today": today,
        }

    def validate_row(self, normalized_row: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        try:
            customer_service.require_customer_name(normalized_row["customer_name"])
        except ValidationError as exc:
            errors.append(str(exc))

        try:
            cents = _to_cents(normalized_row["amount"])
        except (TypeError, ValueError, OverflowError):
            cents = None
            errors.append("amount must be a number")
        else:
            if cents is None or cents <= 0:
                errors.append("amount must be greater than zero")
        normalized_row["payment_amount_cents"] = cents

        if normalized_row["payment_date"]:
            try:
                normalized_row["payment_date"] = parse_iso_datetime(normalized_row["payment_date"])
            except ValueError:
                errors.append("date must be YYYY-MM-DD")
        else:
            normalized_row["payment_date"] = datetime.combine(normalized_row["today"], time.min)

        try:
            normalized_row["payment_method"] = parse_payment_method(normalized_row["payment_method"])
        except ValidationError as exc:
            errors.append(str(exc))
        return errors

    def post_row(self, normalized_row: dict[str, Any], *, owner_id: int, user_id: int) -> PaymentLedgerEntry:
        customer_service.get_or_create_customer(
            owner_id, normalized_row["customer_name"], normalized_row["customer_phone"]
        )
        entry = PaymentLedgerEntry(
            owner_id=owner_id,
            customer_name=normalized_row["customer_name"],
            customer_phone=normalized_row["customer_phone"],
            payment_amount_cents=normalized_row["payment_amount_cents"],
            payment_method=normalized_row["payment_method"],
            payment_date=normalized_row["payment_date"],
            details=[],
            notes=normalized_row["notes"],
            created_by_user_id=user_id,
            created_at=utcnow(),
        )
        db.session.add(entry)
        return entry


def import_payments(owner_id: int, user_id: int, rows: list, *, today: date) -> dict:
    """
    Insert one payment_ledger row per valid input row.

    Row numbers in "skipped" count the header as row 1, matching what a
    spreadsheet shows.
    """
    if not isinstance(rows, list):
        raise CsvImportError("rows must be a list")

    schema = PaymentsImportSchema()
    ready = []
    skipped = []
    for index, raw in enumerate(rows, start=2):
        if not isinstance(raw, dict):
            skipped.append({"row": index, "errors": ["row must be an object"]})
            continue
        normalized = schema.normalize_row(raw, today=today)
        errors = schema.validate_row(normalized)
        if errors:
            skipped.append({"row": index, "errors": errors})
        else:
            ready.append(normalized)

    if not ready:
        raise CsvImportError(NO_VALID_PAYMENTS)

    entries = [schema.post_row(row, owner_id=owner_id, user_id=user_id) for row in ready]
    db.session.commit()

    return {
        "imported": len(entries),
        "skipped": skipped,
        "entries": [entry.to_dict() for entry in entries],
    }
