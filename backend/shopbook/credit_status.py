# Overview: Pure status derivation for credits and invoices; no database access.

from __future__ import annotations

from datetime import date


# Credit statuses
STATUS_PENDING = "pending"
STATUS_PARTIAL = "partial"
STATUS_PAID = "paid"
STATUS_OVERDUE = "overdue"

CREDIT_STATUSES = (STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID, STATUS_OVERDUE)

# Invoice payment statuses (no due date, so never overdue)
INVOICE_STATUSES = (STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID)


def remaining_cents(amount_cents: int, paid_cents: int) -> int:
    """Outstanding balance, clamped at zero."""
    return max(0, (amount_cents or 0) - (paid_cents or 0))


def derive_credit_status(
    remaining: int,
    paid: int,
    due_date: date | None,
    today: date,
) -> str:
    """
    Derive the display status of a credit.

    Rules, first match wins:
    1. nothing remaining -> paid
    2. something paid -> overdue when past due, else partial
    3. nothing paid -> overdue when past due, else pending

    "Past due" means due_date is strictly before today, where today is
    the owner's local date.
    """
    if remaining <= 0:
        return STATUS_PAID
    is_past_due = due_date is not None and due_date < today
    if paid > 0:
        return STATUS_OVERDUE if is_past_due else STATUS_PARTIAL
    return STATUS_OVERDUE if is_past_due else STATUS_PENDING


def derive_invoice_status(final_amount_cents: int, paid_amount_cents: int) -> str:
    if paid_amount_cents >= final_amount_cents:
        return STATUS_PAID
    if paid_amount_cents > 0:
        return STATUS_PARTIAL
    return STATUS_PENDING
