from __future__ import annotations

from ..extensions import db
from shopbook.time_utils import to_utc_z


class Sale(db.Model):
    """
    Invoice issued to a customer.

    final_amount = total - discount. Whatever is not paid at sale time is
    carried by a linked "given" Credit and settled later through Receive
    Payment.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "invoice_number", name="uq_sales_owner_invoice_number"),
        db.Index("ix_sales_owner_customer", "owner_id", "customer_name"),
        db.Index("ix_sales_owner_status_created", "owner_id", "payment_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Human-readable invoice number (e.g., "INV-000042")
    invoice_number = db.Column(db.String(64), nullable=False)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    # Payment tracking (all amounts in cents)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)  # pending, partial, paid
    payment_method = db.Column(db.String(32), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def pending_amount_cents(self) -> int:
        return max(0, self.final_amount_cents - self.paid_amount_cents)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "total_amount_cents": self.total_amount_cents,
            "discount_cents": self.discount_cents,
            "final_amount_cents": self.final_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "pending_amount_cents": self.pending_amount_cents,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Individual line items on an invoice."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="SaleItem.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class PaymentLedgerEntry(db.Model):
    """
    One row per Receive Payment action.

    details lists how the payment was split:
    [{sale_id, invoice_number, allocated_amount_cents, payment_method}, ...]

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "payment_ledger"
    __table_args__ = (
        db.Index("ix_payment_ledger_owner_customer", "owner_id", "customer_name"),
        db.Index("ix_payment_ledger_owner_date", "owner_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    payment_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    details = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "payment_amount_cents": self.payment_amount_cents,
            "payment_method": self.payment_method,
            "payment_date": to_utc_z(self.payment_date),
            "details": list(self.details or []),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
