# Overview: FIFO payment allocator; distributes a received amount across outstanding entries.

"""
Payment allocation is a pure computation. It never touches the database:
callers load the outstanding invoices, ask for a plan, show it as a preview
or apply it inside their own transaction.

Two modes:
- auto_adjust: oldest entry first, until the payment or the entries run out
- specific_invoice: only the chosen entry, excess is not carried over
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from .validation import ValidationError


MODE_AUTO_ADJUST = "auto_adjust"
MODE_SPECIFIC_INVOICE = "specific_invoice"

VALID_MODES = (MODE_AUTO_ADJUST, MODE_SPECIFIC_INVOICE)


class AllocationError(ValidationError):
    """Raised when an allocation request is malformed."""
    pass


@dataclass(frozen=True)
class OutstandingEntry:
    id: int
    pending_cents: int
    entry_date: datetime


@dataclass(frozen=True)
class Allocation:
    id: int
    allocated_cents: int
    new_pending_cents: int

    @property
    def will_clear(self) -> bool:
        return self.new_pending_cents <= 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "allocated_amount_cents": self.allocated_cents,
            "new_pending_amount_cents": self.new_pending_cents,
            "will_clear": self.will_clear,
        }


@dataclass
class AllocationPlan:
    amount_cents: int
    mode: str
    allocations: list[Allocation] = field(default_factory=list)

    @property
    def allocated_cents(self) -> int:
        return sum(a.allocated_cents for a in self.allocations)

    @property
    def unallocated_cents(self) -> int:
        return self.amount_cents - self.allocated_cents

    def to_dict(self) -> dict:
        return {
            "amount_cents": self.amount_cents,
            "mode": self.mode,
            "allocations": [a.to_dict() for a in self.allocations],
            "allocated_cents": self.allocated_cents,
            "unallocated_cents": self.unallocated_cents,
        }


def allocate_payment(
    amount_cents: int,
    entries: Iterable[OutstandingEntry],
    mode: str = MODE_AUTO_ADJUST,
    target_id: int | None = None,
) -> AllocationPlan:
    """
    Build an allocation plan for a payment.

    Entries with nothing pending are ignored. In auto_adjust mode the rest
    are ordered by entry_date ascending; sorted() is stable, so entries
    sharing a date keep the order they were fetched in.

    Any amount beyond the total outstanding is reported as
    unallocated_cents rather than raised.

    Raises:
        AllocationError: non-positive amount, unknown mode, or a missing
        or unknown target in specific_invoice mode
    """
    if amount_cents is None or amount_cents <= 0:
        raise AllocationError("Payment amount must be positive")
    if mode not in VALID_MODES:
        raise AllocationError(f"Invalid allocation mode: {mode}. Must be one of {list(VALID_MODES)}")

    entries = list(entries)
    plan = AllocationPlan(amount_cents=amount_cents, mode=mode)

    if mode == MODE_SPECIFIC_INVOICE:
        if target_id is None:
            raise AllocationError("target invoice is required for specific_invoice mode")
        target = next((e for e in entries if e.id == target_id), None)
        if target is None:
            raise AllocationError(f"Invoice {target_id} is not outstanding for this customer")
        allocated = min(amount_cents, max(0, target.pending_cents))
        if allocated > 0:
            plan.allocations.append(Allocation(
                id=target.id,
                allocated_cents=allocated,
                new_pending_cents=target.pending_cents - allocated,
            ))
        return plan

    remaining = amount_cents
    outstanding = sorted(
        (e for e in entries if e.pending_cents > 0),
        key=lambda e: e.entry_date,
    )
    for entry in outstanding:
        if remaining <= 0:
            break
        allocated = min(remaining, entry.pending_cents)
        plan.allocations.append(Allocation(
            id=entry.id,
            allocated_cents=allocated,
            new_pending_cents=entry.pending_cents - allocated,
        ))
        remaining -= allocated

    return plan
