# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Directory Service

Names are compared in normalized form (trimmed, runs of whitespace
collapsed, lowercased) so "Ali  Khan" and "ali khan" are one customer.
The first spelling the shop typed is what gets displayed.

Credits, invoices and payments store the cleaned customer name directly;
customer_filter() matches those rows the same case-insensitive way.
"""

from __future__ import annotations

import re

from ..extensions import db
from ..models import Customer
from ..validation import ValidationError, ConflictError, optional_text
from shopbook.time_utils import utcnow


_WHITESPACE_RE = re.compile(r"\s+")


class CustomerNotFoundError(ValidationError):
    pass


def clean_name(name) -> str:
    """Trim and collapse whitespace, keep case."""
    if name is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(name).strip())


def normalize_name(name) -> str:
    return clean_name(name).lower()


def customer_filter(column, name):
    """SQL clause matching a stored customer_name column against name."""
    return db.func.lower(column) == normalize_name(name)


def require_customer_name(name) -> str:
    cleaned = clean_name(name)
    if not cleaned:
        raise ValidationError("Customer name is required")
    if len(cleaned) > 128:
        raise ValidationError("Customer name exceeds max length 128")
    return cleaned


def find_customer(owner_id: int, name: str) -> Customer | None:
    return db.session.query(Customer).filter_by(
        owner_id=owner_id,
        customer_name_normalized=normalize_name(name),
    ).first()


def get_or_create_customer(owner_id: int, name: str, phone: str | None = None) -> tuple[Customer, bool]:
    """
    Return (customer, is_new) for name, creating the directory entry if needed.

    An existing entry gets its phone replaced when a different one is
    given, and is restored if it had been deleted. Does not commit, so
    callers can register the customer in the same transaction as the
    credit or invoice that mentions it.
    """
    cleaned = require_customer_name(name)
    phone = optional_text(phone)

    customer = find_customer(owner_id, cleaned)
    if customer:
        if phone and phone != customer.customer_phone:
            customer.customer_phone = phone
        if customer.is_deleted:
            customer.is_deleted = False
            customer.deleted_at = None
        return customer, False

    customer = Customer(
        owner_id=owner_id,
        customer_name=cleaned,
        customer_name_normalized=normalize_name(cleaned),
        customer_phone=phone,
        is_deleted=False,
    )
    db.session.add(customer)
    db.session.flush()
    return customer, True


def list_customers(owner_id: int, search: str | None = None) -> list[Customer]:
    """Active customers sorted by name, for autocomplete."""
    query = db.session.query(Customer).filter_by(owner_id=owner_id, is_deleted=False)
    term = normalize_name(search) if search else ""
    if term:
        query = query.filter(Customer.customer_name_normalized.contains(term, autoescape=True))
    return query.order_by(Customer.customer_name_normalized.asc()).all()


def get_customer(owner_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(
        id=customer_id, owner_id=owner_id, is_deleted=False
    ).first()
    if not customer:
        raise CustomerNotFoundError(f"Customer {customer_id} not found")
    return customer


def update_customer(owner_id: int, customer_id: int, payload: dict) -> Customer:
    """Rename and/or change phone. Renaming onto another customer is a conflict."""
    customer = get_customer(owner_id, customer_id)

    if "customer_name" in payload:
        cleaned = require_customer_name(payload["customer_name"])
        normalized = normalize_name(cleaned)
        if normalized != customer.customer_name_normalized:
            clash = find_customer(owner_id, cleaned)
            if clash and clash.id != customer.id:
                raise ConflictError(f"Customer '{clash.customer_name}' already exists")
        customer.customer_name = cleaned
        customer.customer_name_normalized = normalized

    if "customer_phone" in payload:
        customer.customer_phone = optional_text(payload["customer_phone"])

    db.session.commit()
    return customer


def delete_customer(owner_id: int, customer_id: int) -> Customer:
    """Soft delete; credits and invoices for the customer are untouched."""
    customer = get_customer(owner_id, customer_id)
    customer.is_deleted = True
    customer.deleted_at = utcnow()
    db.session.commit()
    return customer
