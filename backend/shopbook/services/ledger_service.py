# Overview: Service-layer operations for customer ledgers; builds running-balance histories.

"""
Customer Ledger Service

A ledger merges what was lent to a customer with what they paid back
into one running-balance history. build_ledger_history() is the pure
fold; the two loaders below feed it from the database:

- invoice_ledger: invoices that went on credit + payment_ledger rows
- cash_credit_ledger: credits (given/taken/cash) + their credit_transactions

Read-only: nothing here writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time

from ..extensions import db
from ..models import (
    Credit,
    CreditTransaction,
    Sale,
    PaymentLedgerEntry,
    CREDIT_TYPE_GIVEN,
    CREDIT_TYPE_TAKEN,
    CREDIT_TYPE_CASH,
)
from .customer_service import customer_filter
from shopbook.time_utils import to_utc_z


CREDIT_GIVEN = "credit_given"
CREDIT_TAKEN = "credit_taken"
PAYMENT_RECEIVED = "payment_received"
PAYMENT_MADE = "payment_made"

ISSUANCE_KINDS = (CREDIT_GIVEN, CREDIT_TAKEN)

# How each kind moves the running balance
_BALANCE_SIGN = {
    CREDIT_GIVEN: 1,
    PAYMENT_RECEIVED: -1,
    CREDIT_TAKEN: 0,
    PAYMENT_MADE: -1,
}


@dataclass(frozen=True)
class LedgerEvent:
    kind: str
    occurred_at: datetime
    amount_cents: int
    reference: dict = field(default_factory=dict)
    notes: str | None = None


@dataclass(frozen=True)
class LedgerRow:
    event: LedgerEvent
    balance_after_cents: int

    def to_dict(self) -> dict:
        return {
            "transaction_type": self.event.kind,
            "date": to_utc_z(self.event.occurred_at),
            "amount_cents": self.event.amount_cents,
            "balance_after_cents": self.balance_after_cents,
            "notes": self.event.notes,
            **self.event.reference,
        }


def _sort_key(event: LedgerEvent) -> datetime:
    # Issuance rows count from the start of their day, so a credit sorts
    # ahead of any payment made the same day.
    if event.kind in ISSUANCE_KINDS:
        return datetime.combine(event.occurred_at.date(), time.min, tzinfo=event.occurred_at.tzinfo)
    return event.occurred_at


def build_ledger_history(issuances: list[LedgerEvent], payments: list[LedgerEvent]) -> list[LedgerRow]:
    """
    Fold issuance and payment events into a running-balance history.

    Events are stably sorted oldest first with issuances listed ahead of
    payments, so ties keep credits first. credit_given adds to the
    balance, every payment subtracts, credit_taken leaves it alone.
    The displayed balance never goes below zero, but the underlying
    running total does. Returned newest first.
    """
    combined = sorted([*issuances, *payments], key=_sort_key)

    rows: list[LedgerRow] = []
    running = 0
    for event in combined:
        sign = _BALANCE_SIGN.get(event.kind)
        if sign is None:
            raise ValueError(f"Unknown ledger event kind: {event.kind}")
        running += sign * event.amount_cents
        rows.append(LedgerRow(event=event, balance_after_cents=max(0, running)))

    rows.reverse()
    return rows


def _credit_amount_at_sale(sale: Sale) -> int:
    """What the invoice put on the customer's tab when it was issued."""
    linked = [c for c in sale.credits if c.credit_type == CREDIT_TYPE_GIVEN]
    if linked:
        return sum(c.amount_cents for c in linked)
    return sale.pending_amount_cents


def credit_invoices(owner_id: int, customer_name: str) -> list[Sale]:
    """Invoices for the customer that carried an unpaid remainder."""
    sales = db.session.query(Sale).filter(
        Sale.owner_id == owner_id,
        customer_filter(Sale.customer_name, customer_name),
    ).order_by(Sale.created_at.asc(), Sale.id.asc()).all()
    return [s for s in sales if s.credits or s.pending_amount_cents > 0]


def invoice_ledger(owner_id: int, customer_name: str) -> list[LedgerRow]:
    issuances = [
        LedgerEvent(
            kind=CREDIT_GIVEN,
            occurred_at=sale.created_at,
            amount_cents=_credit_amount_at_sale(sale),
            reference={
                "id": f"credit-{sale.id}",
                "sale_id": sale.id,
                "invoice_number": sale.invoice_number,
                "payment_method": None,
            },
        )
        for sale in credit_invoices(owner_id, customer_name)
    ]

    entries = db.session.query(PaymentLedgerEntry).filter(
        PaymentLedgerEntry.owner_id == owner_id,
        customer_filter(PaymentLedgerEntry.customer_name, customer_name),
    ).order_by(PaymentLedgerEntry.payment_date.asc(), PaymentLedgerEntry.id.asc()).all()

    payments = []
    for entry in entries:
        first = (entry.details or [{}])[0]
        payments.append(LedgerEvent(
            kind=PAYMENT_RECEIVED,
            occurred_at=entry.payment_date,
            amount_cents=entry.payment_amount_cents,
            reference={
                "id": entry.id,
                "sale_id": first.get("sale_id"),
                "invoice_number": first.get("invoice_number"),
                "payment_method": first.get("payment_method") or entry.payment_method,
            },
            notes=entry.notes,
        ))

    return build_ledger_history(issuances, payments)


def cash_credit_ledger(owner_id: int, customer_name: str) -> list[LedgerRow]:
    credits = db.session.query(Credit).filter(
        Credit.owner_id == owner_id,
        Credit.credit_type.in_([CREDIT_TYPE_GIVEN, CREDIT_TYPE_TAKEN, CREDIT_TYPE_CASH]),
        customer_filter(Credit.customer_name, customer_name),
    ).order_by(Credit.created_at.asc(), Credit.id.asc()).all()

    issuances = [
        LedgerEvent(
            kind=CREDIT_TAKEN if credit.credit_type == CREDIT_TYPE_TAKEN else CREDIT_GIVEN,
            occurred_at=credit.created_at,
            amount_cents=credit.amount_cents,
            reference={"id": f"credit-{credit.id}", "credit_id": credit.id, "credit_type": credit.credit_type},
            notes=credit.notes,
        )
        for credit in credits
    ]

    payments = []
    credit_types = {credit.id: credit.credit_type for credit in credits}
    if credit_types:
        transactions = db.session.query(CreditTransaction).filter(
            CreditTransaction.credit_id.in_(list(credit_types)),
        ).order_by(CreditTransaction.transaction_date.asc(), CreditTransaction.id.asc()).all()

        for txn in transactions:
            kind = PAYMENT_MADE if credit_types[txn.credit_id] == CREDIT_TYPE_TAKEN else PAYMENT_RECEIVED
            payments.append(LedgerEvent(
                kind=kind,
                occurred_at=txn.transaction_date,
                amount_cents=txn.amount_cents,
                reference={"id": txn.id, "credit_id": txn.credit_id, "credit_type": credit_types[txn.credit_id]},
                notes=txn.notes,
            ))

    return build_ledger_history(issuances, payments)
