"""
Payment allocator tests.

Verifies:
- auto_adjust pays oldest invoices first and stops when money runs out
- specific_invoice only touches the chosen invoice
- Excess money is reported as unallocated, never spread further
- Malformed requests raise AllocationError
"""

from datetime import datetime

import pytest

from shopbook.allocation import (
    allocate_payment,
    OutstandingEntry,
    AllocationError,
    MODE_AUTO_ADJUST,
    MODE_SPECIFIC_INVOICE,
)


def entry(entry_id, pending, day):
    return OutstandingEntry(id=entry_id, pending_cents=pending, entry_date=datetime(2024, 5, day, 12, 0))


# =============================================================================
# AUTO ADJUST
# =============================================================================


class TestAutoAdjust:

    def test_oldest_first_regardless_of_input_order(self):
        plan = allocate_payment(7000, [entry(3, 5000, 10), entry(1, 4000, 1), entry(2, 2000, 5)])

        assert [(a.id, a.allocated_cents, a.new_pending_cents) for a in plan.allocations] == [
            (1, 4000, 0),
            (2, 2000, 0),
            (3, 1000, 4000),
        ]
        assert plan.allocated_cents == 7000
        assert plan.unallocated_cents == 0

    def test_stops_when_payment_is_used_up(self):
        plan = allocate_payment(3000, [entry(1, 4000, 1), entry(2, 2000, 5)])

        assert len(plan.allocations) == 1
        assert plan.allocations[0].allocated_cents == 3000
        assert plan.allocations[0].will_clear is False

    def test_excess_is_unallocated(self):
        plan = allocate_payment(10000, [entry(1, 4000, 1), entry(2, 2000, 5)])

        assert plan.allocated_cents == 6000
        assert plan.unallocated_cents == 4000
        assert all(a.will_clear for a in plan.allocations)

    def test_settled_entries_are_skipped(self):
        plan = allocate_payment(1000, [entry(1, 0, 1), entry(2, 2000, 5)])

        assert [a.id for a in plan.allocations] == [2]

    def test_same_date_keeps_input_order(self):
        plan = allocate_payment(1500, [entry(8, 1000, 3), entry(4, 1000, 3)])

        assert [a.id for a in plan.allocations] == [8, 4]
        assert plan.allocations[1].allocated_cents == 500

    def test_no_entries_allocates_nothing(self):
        plan = allocate_payment(500, [])

        assert plan.allocations == []
        assert plan.unallocated_cents == 500

    def test_to_dict_shape(self):
        data = allocate_payment(1000, [entry(1, 1000, 1)]).to_dict()

        assert data["mode"] == MODE_AUTO_ADJUST
        assert data["allocations"] == [
            {"id": 1, "allocated_amount_cents": 1000, "new_pending_amount_cents": 0, "will_clear": True}
        ]


# =============================================================================
# SPECIFIC INVOICE
# =============================================================================


class TestSpecificInvoice:

    def test_only_target_is_paid(self):
        plan = allocate_payment(
            3000,
            [entry(1, 4000, 1), entry(2, 5000, 5)],
            mode=MODE_SPECIFIC_INVOICE,
            target_id=2,
        )

        assert [(a.id, a.allocated_cents, a.new_pending_cents) for a in plan.allocations] == [(2, 3000, 2000)]

    def test_excess_is_not_carried_to_other_invoices(self):
        plan = allocate_payment(
            9000,
            [entry(1, 4000, 1), entry(2, 5000, 5)],
            mode=MODE_SPECIFIC_INVOICE,
            target_id=2,
        )

        assert [a.id for a in plan.allocations] == [2]
        assert plan.allocated_cents == 5000
        assert plan.unallocated_cents == 4000

    def test_missing_target(self):
        with pytest.raises(AllocationError):
            allocate_payment(1000, [entry(1, 4000, 1)], mode=MODE_SPECIFIC_INVOICE)

    def test_unknown_target(self):
        with pytest.raises(AllocationError):
            allocate_payment(1000, [entry(1, 4000, 1)], mode=MODE_SPECIFIC_INVOICE, target_id=99)


# =============================================================================
# INVALID REQUESTS
# =============================================================================


@pytest.mark.parametrize("amount", [0, -100, None])
def test_non_positive_amount_rejected(amount):
    with pytest.raises(AllocationError):
        allocate_payment(amount, [entry(1, 4000, 1)])


def test_unknown_mode_rejected():
    with pytest.raises(AllocationError):
        allocate_payment(1000, [entry(1, 4000, 1)], mode="round_robin")
