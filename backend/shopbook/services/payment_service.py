# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Receive Payment Service

WHY: Customers pay off invoice balances in lump sums. A received amount
is split across their open invoices by the allocator, oldest first, or
applied to one chosen invoice.

DESIGN PRINCIPLES:
- preview and receive run the same allocation; preview never writes
- Invoices, their linked credits (+ credit transactions) and the single
  payment_ledger row commit in one transaction
- Invoice rows are read under lock and version-checked; stale writes retry
- The ledger row records the full amount received; money beyond what the
  invoices could absorb is reported back as unallocated
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Sale, Credit, PaymentLedgerEntry, CREDIT_TYPE_GIVEN
from ..allocation import (
    allocate_payment,
    OutstandingEntry,
    AllocationPlan,
    MODE_AUTO_ADJUST,
    MODE_SPECIFIC_INVOICE,
)
from ..credit_status import derive_invoice_status, remaining_cents
from ..validation import ValidationError, parse_amount_cents, parse_int, optional_text
from . import customer_service
from .concurrency import lock_for_update, run_with_retry
from .credit_service import apply_credit_payment
from .customer_service import customer_filter
from .sales_service import parse_payment_method
from shopbook.time_utils import utcnow, parse_iso_datetime


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


NO_UNPAID_INVOICES = "No unpaid invoices found for this customer"


def _parse_request(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    customer_name = customer_service.require_customer_name(payload.get("customer_name"))
    amount = parse_amount_cents(payload.get("amount_cents"), "amount_cents")
    mode = payload.get("mode") or MODE_AUTO_ADJUST

    target_id = payload.get("sale_id")
    if target_id is not None:
        target_id = parse_int(target_id, "sale_id")
    if mode == MODE_SPECIFIC_INVOICE and target_id is None:
        raise ValidationError("sale_id is required for specific_invoice mode")

    payment_date = payload.get("payment_date")
    try:
        payment_date = parse_iso_datetime(payment_date) if payment_date else utcnow()
    except ValueError:
        raise ValidationError("payment_date must be an ISO-8601 date or datetime")

    return {
        "customer_name": customer_name,
        "amount_cents": amount,
        "mode": mode,
        "target_id": target_id,
        "payment_method": parse_payment_method(payload.get("payment_method")),
        "payment_date": payment_date,
        "notes": optional_text(payload.get("notes")),
    }


def _outstanding_query(owner_id: int, customer_name: str):
    return db.session.query(Sale).filter(
        Sale.owner_id == owner_id,
        customer_filter(Sale.customer_name, customer_name),
        Sale.final_amount_cents > Sale.paid_amount_cents,
    ).order_by(Sale.created_at.asc(), Sale.id.asc())


def _plan_for(sales: list[Sale], request: dict) -> AllocationPlan:
    if not sales:
        raise PaymentError(NO_UNPAID_INVOICES)
    entries = [
        OutstandingEntry(id=s.id, pending_cents=s.pending_amount_cents, entry_date=s.created_at)
        for s in sales
    ]
    return allocate_payment(
        request["amount_cents"],
        entries,
        mode=request["mode"],
        target_id=request["target_id"],
    )


def _describe(plan: AllocationPlan, sales: list[Sale]) -> dict:
    by_id = {s.id: s for s in sales}
    data = plan.to_dict()
    for allocation in data["allocations"]:
        sale = by_id[allocation["id"]]
        allocation["sale_id"] = sale.id
        allocation["invoice_number"] = sale.invoice_number
        allocation["invoice_date"] = sale.created_at.date().isoformat() if sale.created_at else None
        allocation["pending_amount_cents"] = sale.pending_amount_cents
    return data


def preview_payment(owner_id: int, payload: dict) -> dict:
    """Show how a payment would be split. Nothing is written."""
    request = _parse_request(payload)
    sales = _outstanding_query(owner_id, request["customer_name"]).all()
    plan = _plan_for(sales, request)
    return {
        "customer_name": request["customer_name"],
        "total_pending_cents": sum(s.pending_amount_cents for s in sales),
        **_describe(plan, sales),
    }


def _apply_to_linked_credits(
    sale: Sale,
    amount_cents: int,
    *,
    today: date,
    user_id: int,
    payment_method: str,
    payment_date,
) -> None:
    """Move the invoice's linked credits by the amount applied to the invoice."""
    left = amount_cents
    credits = lock_for_update(
        db.session.query(Credit).filter_by(sale_id=sale.id, credit_type=CREDIT_TYPE_GIVEN)
    ).order_by(Credit.created_at.asc(), Credit.id.asc()).all()

    for credit in credits:
        if left <= 0:
            break
        remaining = remaining_cents(credit.amount_cents, credit.paid_amount_cents)
        if remaining <= 0:
            continue
        applied = min(left, remaining)
        apply_credit_payment(
            credit,
            applied,
            today=today,
            user_id=user_id,
            notes=f"Payment received via {payment_method}",
            transaction_date=payment_date,
        )
        left -= applied


def receive_payment(owner_id: int, user_id: int, payload: dict, *, today: date) -> dict:
    """
    Apply a received payment to the customer's open invoices.

    Request fields: customer_name, amount_cents, mode (auto_adjust |
    specific_invoice), sale_id (specific mode), payment_method,
    payment_date, notes.

    Returns the ledger entry, the applied allocations and the refreshed
    outstanding invoices.

    Raises:
        ValidationError / AllocationError: malformed request
        PaymentError: the customer has no unpaid invoices
    """
    request = _parse_request(payload)

    def _op():
        sales = lock_for_update(_outstanding_query(owner_id, request["customer_name"])).all()
        plan = _plan_for(sales, request)
        by_id = {s.id: s for s in sales}

        details = []
        for allocation in plan.allocations:
            sale = by_id[allocation.id]
            sale.paid_amount_cents += allocation.allocated_cents
            sale.payment_status = derive_invoice_status(sale.final_amount_cents, sale.paid_amount_cents)
            _apply_to_linked_credits(
                sale,
                allocation.allocated_cents,
                today=today,
                user_id=user_id,
                payment_method=request["payment_method"],
                payment_date=request["payment_date"],
            )
            details.append({
                "sale_id": sale.id,
                "invoice_number": sale.invoice_number,
                "allocated_amount_cents": allocation.allocated_cents,
                "payment_method": request["payment_method"],
            })

        first = sales[0]
        entry = PaymentLedgerEntry(
            owner_id=owner_id,
            customer_name=first.customer_name,
            customer_phone=next((s.customer_phone for s in sales if s.customer_phone), None),
            payment_amount_cents=request["amount_cents"],
            payment_method=request["payment_method"],
            payment_date=request["payment_date"],
            details=details,
            notes=request["notes"] or f"Payment received via {request['payment_method']}",
            created_by_user_id=user_id,
            created_at=utcnow(),
        )
        db.session.add(entry)
        db.session.commit()

        return {
            "ledger_entry": entry.to_dict(),
            "allocations": [a.to_dict() for a in plan.allocations],
            "allocated_cents": plan.allocated_cents,
            "unallocated_cents": plan.unallocated_cents,
            "invoices": [by_id[a.id].to_dict() for a in plan.allocations],
        }

    return run_with_retry(_op)


def list_payment_ledger(owner_id: int, *, customer_name: str | None = None, limit: int = 10) -> list[PaymentLedgerEntry]:
    query = db.session.query(PaymentLedgerEntry).filter(PaymentLedgerEntry.owner_id == owner_id)
    if customer_name:
        query = query.filter(customer_filter(PaymentLedgerEntry.customer_name, customer_name))
    return query.order_by(
        PaymentLedgerEntry.created_at.desc(), PaymentLedgerEntry.id.desc()
    ).limit(limit).all()
