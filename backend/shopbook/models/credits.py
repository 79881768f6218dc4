from __future__ import annotations

from ..extensions import db
from shopbook.time_utils import to_utc_z, to_iso_date


CREDIT_TYPE_GIVEN = "given"
CREDIT_TYPE_TAKEN = "taken"
CREDIT_TYPE_CASH = "cash"

CREDIT_TYPES = (CREDIT_TYPE_GIVEN, CREDIT_TYPE_TAKEN, CREDIT_TYPE_CASH)


class Credit(db.Model):
    """
    Money owed between the shop and a customer.

    given: the customer owes the shop (includes unpaid invoice remainders,
    linked through sale_id). taken: the shop owes the customer. cash: cash
    lent to the customer, tracked like given.

    remaining_amount_cents is always max(0, amount - paid). status is a
    cached value; reads recompute it against the owner's local date.
    """
    __tablename__ = "credits"
    __table_args__ = (
        db.Index("ix_credits_owner_customer", "owner_id", "customer_name"),
        db.Index("ix_credits_owner_type_created", "owner_id", "credit_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Set when the credit is the unpaid remainder of an invoice
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    credit_type = db.Column(db.String(16), nullable=False, default=CREDIT_TYPE_GIVEN)

    amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False)

    due_date = db.Column(db.Date, nullable=True)
    date_complete = db.Column(db.Date, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship("Sale", backref=db.backref("credits", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "sale_id": self.sale_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "credit_type": self.credit_type,
            "amount_cents": self.amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "due_date": to_iso_date(self.due_date),
            "date_complete": to_iso_date(self.date_complete),
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class CreditTransaction(db.Model):
    """
    A payment recorded against a credit.

    IMMUTABLE: payment flows only insert rows. Rows go away only together
    with their parent credit.
    """
    __tablename__ = "credit_transactions"
    __table_args__ = (
        db.Index("ix_credit_transactions_owner_customer", "owner_id", "customer_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    credit_id = db.Column(db.Integer, db.ForeignKey("credits.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    credit = db.relationship("Credit", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "credit_id": self.credit_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "amount_cents": self.amount_cents,
            "transaction_date": to_utc_z(self.transaction_date),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
