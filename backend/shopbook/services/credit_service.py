# Overview: Service-layer operations for credits; encapsulates business logic and database work.

"""
Customer Credit Service

WHY: Shops lend goods and cash to regulars and settle up later. A credit
tracks amount, paid and remaining; each repayment is a CreditTransaction.

DESIGN PRINCIPLES:
- remaining = max(0, amount - paid) is rewritten on every amount change
- status is cached at write time but always recomputed on read against
  the owner's local "today"
- A payment can never exceed what remains on the credit
- Credit update + transaction insert commit together
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Credit, CreditTransaction, Sale, CREDIT_TYPES, CREDIT_TYPE_GIVEN, CREDIT_TYPE_TAKEN
from ..credit_status import (
    derive_credit_status,
    derive_invoice_status,
    remaining_cents,
    STATUS_OVERDUE,
    CREDIT_STATUSES,
)
from ..validation import (
    ValidationError,
    parse_amount_cents,
    parse_date_value,
    optional_text,
)
from . import customer_service
from .concurrency import get_owned_for_update, lock_for_update, run_with_retry
from shopbook.time_utils import utcnow, parse_iso_datetime


class CreditError(Exception):
    """Raised for credit business-rule violations."""
    pass


class CreditNotFoundError(CreditError):
    pass


def _parse_credit_type(value) -> str:
    credit_type = (value or CREDIT_TYPE_GIVEN)
    if credit_type not in CREDIT_TYPES:
        raise ValidationError(f"Invalid credit_type: {credit_type}. Must be one of {list(CREDIT_TYPES)}")
    return credit_type


def _parse_moment(value, field: str):
    """Accept a date or datetime string; None means now."""
    if value in (None, ""):
        return utcnow()
    try:
        moment = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
    return moment


def refresh_amounts(credit: Credit, today: date) -> None:
    """Rewrite remaining and the cached status from amount and paid."""
    credit.remaining_amount_cents = remaining_cents(credit.amount_cents, credit.paid_amount_cents)
    credit.status = derive_credit_status(
        credit.remaining_amount_cents,
        credit.paid_amount_cents,
        credit.due_date,
        today,
    )


def serialize_credit(credit: Credit, today: date) -> dict:
    """to_dict() with remaining and status recomputed from raw amounts."""
    data = credit.to_dict()
    remaining = remaining_cents(credit.amount_cents, credit.paid_amount_cents)
    data["remaining_amount_cents"] = remaining
    data["status"] = derive_credit_status(remaining, credit.paid_amount_cents, credit.due_date, today)
    return data


def get_credit(owner_id: int, credit_id: int) -> Credit:
    credit = db.session.query(Credit).filter_by(id=credit_id, owner_id=owner_id).first()
    if not credit:
        raise CreditNotFoundError(f"Credit {credit_id} not found")
    return credit


def list_credits(
    owner_id: int,
    *,
    credit_type: str | None = None,
    search: str | None = None,
    status: str | None = None,
    today: date,
) -> list[dict]:
    """
    Credits newest first, serialized with fresh status.

    status filters on the recomputed status, never the stored one.
    """
    query = db.session.query(Credit).filter(Credit.owner_id == owner_id)
    if credit_type:
        query = query.filter(Credit.credit_type == _parse_credit_type(credit_type))
    term = customer_service.normalize_name(search) if search else ""
    if term:
        query = query.filter(db.func.lower(Credit.customer_name).contains(term, autoescape=True))
    if status and status not in CREDIT_STATUSES:
        raise ValidationError(f"Invalid status: {status}. Must be one of {list(CREDIT_STATUSES)}")

    rows = [
        serialize_credit(credit, today)
        for credit in query.order_by(Credit.created_at.desc(), Credit.id.desc()).all()
    ]
    if status:
        rows = [row for row in rows if row["status"] == status]
    return rows


def credit_summary(owner_id: int, *, today: date) -> dict:
    """
    Outstanding totals for the credit dashboard cards.

    given/taken/cash sum the remaining balance per type; overdue sums
    remaining on every credit whose recomputed status is overdue.
    """
    totals = {credit_type: 0 for credit_type in CREDIT_TYPES}
    counts = {status: 0 for status in CREDIT_STATUSES}
    overdue_cents = 0

    for credit in db.session.query(Credit).filter_by(owner_id=owner_id).all():
        data = serialize_credit(credit, today)
        totals[credit.credit_type] = totals.get(credit.credit_type, 0) + data["remaining_amount_cents"]
        counts[data["status"]] += 1
        if data["status"] == STATUS_OVERDUE:
            overdue_cents += data["remaining_amount_cents"]

    return {
        "total_given_cents": totals[CREDIT_TYPE_GIVEN],
        "total_taken_cents": totals[CREDIT_TYPE_TAKEN],
        "total_cash_cents": totals["cash"],
        "total_overdue_cents": overdue_cents,
        "status_counts": counts,
    }


def create_credit(owner_id: int, user_id: int, payload: dict, *, today: date) -> Credit:
    """
    Create a credit entry.

    Request fields: customer_name, customer_phone, credit_type, amount_cents,
    credit_date (optional, defaults to now), due_date, notes.
    The customer is registered in the directory in the same transaction.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    amount = parse_amount_cents(payload.get("amount_cents"), "amount_cents")
    credit_type = _parse_credit_type(payload.get("credit_type"))
    due_date = parse_date_value(payload.get("due_date"), "due_date")
    created_at = _parse_moment(payload.get("credit_date"), "credit_date")

    customer, _ = customer_service.get_or_create_customer(
        owner_id, payload.get("customer_name"), payload.get("customer_phone")
    )

    credit = Credit(
        owner_id=owner_id,
        customer_name=customer.customer_name,
        customer_phone=customer.customer_phone,
        credit_type=credit_type,
        amount_cents=amount,
        paid_amount_cents=0,
        due_date=due_date,
        notes=optional_text(payload.get("notes")),
        created_by_user_id=user_id,
        created_at=created_at,
    )
    refresh_amounts(credit, today)
    db.session.add(credit)
    db.session.commit()
    return credit


EDITABLE_FIELDS = {
    "customer_name", "customer_phone", "credit_type", "amount_cents",
    "due_date", "date_complete", "notes",
}


def update_credit(owner_id: int, credit_id: int, payload: dict, *, today: date) -> Credit:
    """
    Edit a credit. paid_amount is not editable here; payments go through
    record_payment so every change leaves a transaction behind.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(payload) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    def _op():
        credit = get_owned_for_update(Credit, owner_id=owner_id, row_id=credit_id)
        if not credit:
            raise CreditNotFoundError(f"Credit {credit_id} not found")

        if "amount_cents" in payload:
            credit.amount_cents = parse_amount_cents(payload["amount_cents"], "amount_cents")
        if "credit_type" in payload:
            credit.credit_type = _parse_credit_type(payload["credit_type"])
        if "due_date" in payload:
            credit.due_date = parse_date_value(payload["due_date"], "due_date")
        if "date_complete" in payload:
            credit.date_complete = parse_date_value(payload["date_complete"], "date_complete")
        if "notes" in payload:
            credit.notes = optional_text(payload["notes"])
        if "customer_name" in payload or "customer_phone" in payload:
            customer, _ = customer_service.get_or_create_customer(
                owner_id,
                payload.get("customer_name", credit.customer_name),
                payload.get("customer_phone", credit.customer_phone),
            )
            credit.customer_name = customer.customer_name
            credit.customer_phone = customer.customer_phone

        refresh_amounts(credit, today)
        db.session.commit()
        return credit

    return run_with_retry(_op)


def delete_credit(owner_id: int, credit_id: int) -> None:
    """Delete a credit together with its payment transactions."""
    credit = get_credit(owner_id, credit_id)
    db.session.query(CreditTransaction).filter_by(credit_id=credit.id).delete(synchronize_session=False)
    db.session.delete(credit)
    db.session.commit()


def apply_credit_payment(
    credit: Credit,
    amount_cents: int,
    *,
    today: date,
    user_id: int | None,
    notes: str | None,
    transaction_date=None,
) -> CreditTransaction:
    """
    Apply a payment to an already-locked credit and add its transaction.

    Does not commit; shared by record_payment and the receive-payment
    flow so both write credits the same way.
    """
    credit.paid_amount_cents = (credit.paid_amount_cents or 0) + amount_cents
    refresh_amounts(credit, today)

    txn = CreditTransaction(
        owner_id=credit.owner_id,
        credit_id=credit.id,
        customer_name=credit.customer_name,
        customer_phone=credit.customer_phone,
        amount_cents=amount_cents,
        transaction_date=transaction_date or utcnow(),
        notes=notes,
        created_by_user_id=user_id,
        created_at=utcnow(),
    )
    db.session.add(txn)
    return txn


def record_payment(
    owner_id: int,
    credit_id: int,
    user_id: int,
    payload: dict,
    *,
    today: date,
) -> tuple[Credit, CreditTransaction]:
    """
    Record a repayment against one credit.

    Raises:
        ValidationError: amount missing, not an integer, or <= 0
        CreditError: amount exceeds the remaining balance

    A credit that is the unpaid part of an invoice also moves the
    invoice's paid amount, so the invoice is not collected twice.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    amount = parse_amount_cents(payload.get("amount_cents"), "amount_cents")
    transaction_date = _parse_moment(payload.get("payment_date"), "payment_date")
    notes = optional_text(payload.get("notes"))

    def _op():
        credit = get_owned_for_update(Credit, owner_id=owner_id, row_id=credit_id)
        if not credit:
            raise CreditNotFoundError(f"Credit {credit_id} not found")

        remaining = remaining_cents(credit.amount_cents, credit.paid_amount_cents)
        if amount > remaining:
            raise CreditError(
                f"Payment amount ({amount}) cannot exceed remaining balance ({remaining})"
            )

        default_note = "Payment made" if credit.credit_type == CREDIT_TYPE_TAKEN else "Payment received"
        txn = apply_credit_payment(
            credit,
            amount,
            today=today,
            user_id=user_id,
            notes=notes or default_note,
            transaction_date=transaction_date,
        )

        if credit.sale_id:
            sale = lock_for_update(
                db.session.query(Sale).filter_by(id=credit.sale_id, owner_id=owner_id)
            ).first()
            if sale:
                sale.paid_amount_cents = min(sale.final_amount_cents, sale.paid_amount_cents + amount)
                sale.payment_status = derive_invoice_status(sale.final_amount_cents, sale.paid_amount_cents)

        db.session.commit()
        return credit, txn

    return run_with_retry(_op)


def list_transactions(owner_id: int, credit_id: int) -> list[CreditTransaction]:
    credit = get_credit(owner_id, credit_id)
    return db.session.query(CreditTransaction).filter_by(
        credit_id=credit.id
    ).order_by(CreditTransaction.transaction_date.desc(), CreditTransaction.id.desc()).all()


def refresh_statuses(owner_id: int | None = None, *, today_for) -> int:
    """
    Recompute every cached credit status.

    today_for(owner_id) returns that owner's local date. Returns the
    number of credits whose stored status changed.
    """
    query = db.session.query(Credit)
    if owner_id is not None:
        query = query.filter_by(owner_id=owner_id)

    changed = 0
    todays: dict[int, date] = {}
    for credit in query.all():
        if credit.owner_id not in todays:
            todays[credit.owner_id] = today_for(credit.owner_id)
        before = (credit.status, credit.remaining_amount_cents)
        refresh_amounts(credit, todays[credit.owner_id])
        if (credit.status, credit.remaining_amount_cents) != before:
            changed += 1

    db.session.commit()
    return changed
