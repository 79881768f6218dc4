# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Invoice (Sale) Service

WHY: An invoice records what was sold and what was paid on the spot.
Whatever was not paid becomes a "given" credit linked to the invoice,
and Receive Payment settles it later.

DESIGN:
- Totals are derived from item lines, never trusted from the client
- final = total - discount; paid may not exceed final
- Invoice numbers come from the owner's sequence (INV-000001, ...)
- Invoice, items and the linked credit commit in one transaction
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Sale, SaleItem, Credit, CreditTransaction, CREDIT_TYPE_GIVEN
from ..credit_status import derive_invoice_status
from ..validation import (
    ValidationError,
    parse_amount_cents,
    parse_int,
    parse_date_value,
    require_text,
    optional_text,
    MAX_AMOUNT_CENTS,
)
from . import customer_service
from . import settings_service
from .credit_service import refresh_amounts
from .customer_service import customer_filter
from shopbook.time_utils import utcnow, parse_iso_datetime


class SaleError(Exception):
    """Raised for invoice business-rule violations."""
    pass


class SaleNotFoundError(SaleError):
    pass


WALK_IN_CUSTOMER = "Walk-in Customer"

PAYMENT_METHODS = ("cash", "card", "online", "credit")


def parse_payment_method(value) -> str:
    method = (optional_text(value) or "cash").lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment_method: {method}. Must be one of {list(PAYMENT_METHODS)}")
    return method


def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        quantity = parse_int(raw.get("quantity"), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        unit_price = parse_amount_cents(
            raw.get("unit_price_cents"), f"items[{index}].unit_price_cents", allow_zero=True
        )
        items.append({
            "description": require_text(raw.get("description"), f"items[{index}].description", max_length=255),
            "quantity": quantity,
            "unit_price_cents": unit_price,
            "line_total_cents": quantity * unit_price,
        })
    return items


def create_invoice(owner_id: int, user_id: int, payload: dict, *, today: date) -> Sale:
    """
    Create an invoice with its items.

    Request fields: customer_name, customer_phone, items
    [{description, quantity, unit_price_cents}], discount_cents,
    paid_amount_cents, payment_method, invoice_date, due_date.

    An unpaid remainder creates a linked "given" Credit with due_date.

    Raises:
        ValidationError: bad items, discount above total, paid above final
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = _parse_items(payload.get("items"))
    total = sum(item["line_total_cents"] for item in items)
    if total > MAX_AMOUNT_CENTS:
        raise ValidationError("Invoice total is too large")

    discount = parse_amount_cents(payload.get("discount_cents", 0), "discount_cents", allow_zero=True)
    if discount > total:
        raise ValidationError("discount_cents cannot exceed the invoice total")
    final = total - discount

    paid = parse_amount_cents(payload.get("paid_amount_cents", final), "paid_amount_cents", allow_zero=True)
    if paid > final:
        raise ValidationError("paid_amount_cents cannot exceed the final amount")

    payment_method = parse_payment_method(payload.get("payment_method"))
    due_date = parse_date_value(payload.get("due_date"), "due_date")

    invoice_date = payload.get("invoice_date")
    try:
        created_at = parse_iso_datetime(invoice_date) if invoice_date else utcnow()
    except ValueError:
        raise ValidationError("invoice_date must be an ISO-8601 date or datetime")

    customer_name = customer_service.clean_name(payload.get("customer_name")) or WALK_IN_CUSTOMER
    customer_phone = optional_text(payload.get("customer_phone"))
    if customer_name != WALK_IN_CUSTOMER:
        customer, _ = customer_service.get_or_create_customer(owner_id, customer_name, customer_phone)
        customer_name = customer.customer_name
        customer_phone = customer.customer_phone

    sale = Sale(
        owner_id=owner_id,
        invoice_number=settings_service.next_invoice_number(owner_id),
        customer_name=customer_name,
        customer_phone=customer_phone,
        total_amount_cents=total,
        discount_cents=discount,
        final_amount_cents=final,
        paid_amount_cents=paid,
        payment_status=derive_invoice_status(final, paid),
        payment_method=payment_method,
        created_by_user_id=user_id,
        created_at=created_at,
    )
    for item in items:
        sale.items.append(SaleItem(**item))
    db.session.add(sale)
    db.session.flush()

    unpaid = final - paid
    if unpaid > 0:
        credit = Credit(
            owner_id=owner_id,
            sale_id=sale.id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            credit_type=CREDIT_TYPE_GIVEN,
            amount_cents=unpaid,
            paid_amount_cents=0,
            due_date=due_date,
            notes=f"Partial payment for invoice {sale.invoice_number}",
            created_by_user_id=user_id,
            created_at=created_at,
        )
        refresh_amounts(credit, today)
        db.session.add(credit)

    db.session.commit()
    return sale


def list_sales(
    owner_id: int,
    *,
    customer_name: str | None = None,
    payment_status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 100,
) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.owner_id == owner_id)
    if customer_name:
        query = query.filter(customer_filter(Sale.customer_name, customer_name))
    if payment_status:
        query = query.filter(Sale.payment_status == payment_status)
    if start_date:
        query = query.filter(db.func.date(Sale.created_at) >= start_date.isoformat())
    if end_date:
        query = query.filter(db.func.date(Sale.created_at) <= end_date.isoformat())
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def get_sale(owner_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, owner_id=owner_id).first()
    if not sale:
        raise SaleNotFoundError(f"Sale {sale_id} not found")
    return sale


def delete_sale(owner_id: int, sale_id: int) -> None:
    """
    Delete an invoice, its items and its linked credits.

    Payment ledger rows that mention the invoice stay as they are; they
    record money that was actually received.
    """
    sale = get_sale(owner_id, sale_id)
    for credit in list(sale.credits):
        db.session.query(CreditTransaction).filter_by(credit_id=credit.id).delete(synchronize_session=False)
        db.session.delete(credit)
    db.session.delete(sale)
    db.session.commit()


def outstanding_invoices(owner_id: int, customer_name: str) -> list[Sale]:
    """Customer's invoices with something still pending, oldest first."""
    sales = db.session.query(Sale).filter(
        Sale.owner_id == owner_id,
        customer_filter(Sale.customer_name, customer_name),
        Sale.final_amount_cents > Sale.paid_amount_cents,
    ).order_by(Sale.created_at.asc(), Sale.id.asc()).all()
    return sales


def outstanding_summary(sales: list[Sale]) -> dict:
    return {
        "invoice_count": len(sales),
        "total_invoiced_cents": sum(s.final_amount_cents for s in sales),
        "total_paid_cents": sum(s.paid_amount_cents for s in sales),
        "total_pending_cents": sum(s.pending_amount_cents for s in sales),
    }
