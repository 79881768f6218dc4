from __future__ import annotations

from ..extensions import db
from shopbook.time_utils import to_utc_z, to_iso_date


class Expense(db.Model):
    """Business expense (rent, salaries, utilities, ...)."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_owner_date", "owner_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    expense_type = db.Column(db.String(64), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=True)
    expense_date = db.Column(db.Date, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "expense_type": self.expense_type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "expense_date": to_iso_date(self.expense_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
