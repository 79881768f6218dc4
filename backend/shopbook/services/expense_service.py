# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Expense
from ..validation import (
    ValidationError,
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_amounts,
)


class ExpenseNotFoundError(ValidationError):
    pass


EXPENSE_TYPES = (
    "Utilities",
    "Rent",
    "Salary",
    "Transportation",
    "Supplies",
    "Maintenance",
    "Marketing",
    "Food",
    "Other",
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"expense_type", "amount_cents", "description", "expense_date"},
    required_on_create={"expense_type", "amount_cents", "expense_date"},
)


def _validated(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=partial)
    enforce_rules_amounts(patch, "amount_cents")
    if "expense_type" in patch and patch["expense_type"] not in EXPENSE_TYPES:
        raise ValidationError(f"Invalid expense_type: {patch['expense_type']}. Must be one of {list(EXPENSE_TYPES)}")
    if "expense_date" in patch and patch["expense_date"] is None:
        raise ValidationError("expense_date cannot be blank")
    if "description" in patch and patch["description"] == "":
        patch["description"] = None
    return patch


def list_expenses(
    owner_id: int,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    expense_type: str | None = None,
) -> list[Expense]:
    query = db.session.query(Expense).filter(Expense.owner_id == owner_id)
    if start_date:
        query = query.filter(Expense.expense_date >= start_date)
    if end_date:
        query = query.filter(Expense.expense_date <= end_date)
    if expense_type:
        query = query.filter(Expense.expense_type == expense_type)
    return query.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()


def expense_summary(owner_id: int, **filters) -> dict:
    """Total and per-type totals over the same filters as list_expenses."""
    by_type: dict[str, int] = {}
    total = 0
    expenses = list_expenses(owner_id, **filters)
    for expense in expenses:
        by_type[expense.expense_type] = by_type.get(expense.expense_type, 0) + expense.amount_cents
        total += expense.amount_cents
    return {
        "total_cents": total,
        "count": len(expenses),
        "by_type": [
            {"expense_type": expense_type, "total_cents": amount}
            for expense_type, amount in sorted(by_type.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
    }


def get_expense(owner_id: int, expense_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id, owner_id=owner_id).first()
    if not expense:
        raise ExpenseNotFoundError(f"Expense {expense_id} not found")
    return expense


def create_expense(owner_id: int, user_id: int, payload: dict) -> Expense:
    patch = _validated(payload, partial=False)
    expense = Expense(owner_id=owner_id, created_by_user_id=user_id, **patch)
    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(owner_id: int, expense_id: int, payload: dict) -> Expense:
    patch = _validated(payload, partial=True)
    expense = get_expense(owner_id, expense_id)
    for key, value in patch.items():
        setattr(expense, key, value)
    db.session.commit()
    return expense


def delete_expense(owner_id: int, expense_id: int) -> None:
    expense = get_expense(owner_id, expense_id)
    db.session.delete(expense)
    db.session.commit()
